import argparse
import asyncio
import json
import sys
from datetime import timedelta

from jobflow.config import Settings, configure_logging
from jobflow.errors import JobflowError
from jobflow.models.execution import TriggeredBy
from jobflow.models.workflow import Workflow, WorkflowStatus
from jobflow.platforms.base import ScraperConfig
from jobflow.runtime import create_engine


def print_execution(execution):
    print(f"\n🧾 Execution {execution.execution_id} [{execution.status.value}]")
    print(f"   Triggered by: {execution.triggered_by.value}")
    print(f"   Started: {execution.started_at.isoformat()}")
    if execution.duration is not None:
        print(f"   Duration: {execution.duration} ms")
    print(f"   Jobs: {execution.jobs_filtered}")
    for log in execution.node_logs:
        line = f"   - {log.node_id} ({log.node_type}): {log.status.value} {log.input_count} -> {log.output_count}"
        if log.error:
            line += f" | {log.error}"
        print(line)
    if execution.error:
        print(f"   ❌ {execution.error}")


async def cmd_run(engine, args):
    print(f"🚀 Running workflow {args.workflow_id}...")
    execution = await engine.executor.execute(args.workflow_id, triggered_by=TriggeredBy.MANUAL, user_id=args.user)
    print_execution(execution)


async def cmd_import(engine, args):
    with open(args.path, "r", encoding="utf-8") as f:
        data = json.load(f)
    items = data if isinstance(data, list) else [data]
    for raw in items:
        workflow = Workflow.from_dict(raw)
        await engine.store.save_workflow(workflow)
        print(f"📥 Imported {workflow.workflow_id} ({len(workflow.nodes)} nodes, {workflow.schedule.value})")


async def cmd_activate(engine, args):
    workflow = await engine.store.get_workflow(args.workflow_id)
    if workflow is None:
        print(f"❌ Workflow not found: {args.workflow_id}")
        return 1
    workflow.status = WorkflowStatus.PUBLISHED
    workflow.activate(timedelta(days=args.days))
    await engine.store.save_workflow(workflow)
    print(f"✅ {workflow.workflow_id} active until {workflow.deactivates_at.isoformat()}")


async def cmd_list(engine, args):
    workflows = await engine.store.list_workflows()
    if not workflows:
        print("📭 No workflows stored.")
    for workflow in workflows:
        state = "active" if workflow.is_active else "inactive"
        print(
            f"• {workflow.workflow_id} | {workflow.title or '-'} | {workflow.status.value}, {state} | "
            f"{workflow.schedule.value} | runs: {workflow.execution_count}"
        )


async def cmd_history(engine, args):
    executions = await engine.executor.get_execution_history(args.workflow_id, limit=args.limit)
    if not executions:
        print(f"📭 No executions for {args.workflow_id}.")
    for execution in executions:
        print_execution(execution)


async def cmd_scrape(engine, args):
    config = ScraperConfig(keywords=args.keywords, location=args.location, max_results=args.max_results)
    if args.sources:
        sources = [s.strip() for s in args.sources.split(",") if s.strip()]
        combined = await engine.scrapers.scrape_combined(sources, config)
    else:
        combined = await engine.scrapers.scrape_all(config)

    for source, result in combined.results.items():
        print(f"🌍 {source}: {len(result.jobs)} jobs in {result.duration} ms")
    for error in combined.errors:
        print(f"⚠️ {error}")
    print(f"\n✅ {len(combined.jobs)} unique jobs")
    for job in combined.jobs[:args.show]:
        print(f"   - {job.title} @ {job.company} ({job.location}) [{job.source}]")


COMMANDS = {
    "run": cmd_run,
    "import": cmd_import,
    "activate": cmd_activate,
    "list": cmd_list,
    "history": cmd_history,
    "scrape": cmd_scrape,
}


def build_parser():
    parser = argparse.ArgumentParser(description="Run and inspect job-alert workflows.")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a workflow now")
    run.add_argument("workflow_id")
    run.add_argument("--user", default=None, help="User the run is attributed to")

    imp = sub.add_parser("import", help="Load workflow definitions from a JSON file")
    imp.add_argument("path")

    activate = sub.add_parser("activate", help="Publish a workflow and open its activation window")
    activate.add_argument("workflow_id")
    activate.add_argument("--days", type=int, default=30)

    sub.add_parser("list", help="List stored workflows")

    history = sub.add_parser("history", help="Show recent executions of a workflow")
    history.add_argument("workflow_id")
    history.add_argument("--limit", type=int, default=10)

    scrape = sub.add_parser("scrape", help="Scrape sources directly, outside any workflow")
    scrape.add_argument("--sources", default="", help="Comma-separated source ids (default: all)")
    scrape.add_argument("--keywords", default="software engineer")
    scrape.add_argument("--location", default="India")
    scrape.add_argument("--max-results", type=int, default=25)
    scrape.add_argument("--show", type=int, default=10)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    engine = create_engine(settings)

    try:
        return asyncio.run(COMMANDS[args.command](engine, args)) or 0
    except JobflowError as e:
        print(f"\n❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
