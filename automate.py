import asyncio
import sys
from datetime import datetime

from jobflow.config import Settings, configure_logging
from jobflow.runtime import create_engine


async def run_all_once(engine):
    """Runs every published, active workflow one time, one after another."""
    workflows = await engine.store.list_schedulable()
    print(f"⚡ Single Run Mode: {len(workflows)} workflow(s)")
    for workflow in workflows:
        execution = await engine.scheduler.trigger(workflow.workflow_id)
        if execution is None:
            print(f"❌ {workflow.workflow_id} failed (see log)")
        else:
            print(f"✅ {workflow.workflow_id}: {execution.status.value}, {execution.jobs_filtered} jobs")


async def run_loop(engine):
    scheduler = engine.scheduler
    await scheduler.start()

    status = scheduler.status()
    print(f"🤖 Scheduler running ({engine.settings.scheduler_timezone}), {status['scheduled_count']} workflow(s):")
    for entry in status["entries"]:
        print(f"   - {entry['workflow_id']}: {entry['schedule']}")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await scheduler.stop()


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    engine = create_engine(settings)

    print(f"\n🚀 Starting: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    # Run with: python automate.py --once
    if "--once" in sys.argv:
        asyncio.run(run_all_once(engine))
        return

    # Run with: python automate.py
    try:
        asyncio.run(run_loop(engine))
    except KeyboardInterrupt:
        print("👋 Scheduler stopped.")


if __name__ == "__main__":
    main()
