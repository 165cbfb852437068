import dataclasses
import logging
from typing import Dict, Iterable, Optional

from ..errors import ConfigurationError
from ..models.job import dedupe_jobs, sort_newest_first
from ..models.workflow import (
    DailyEmailNode,
    FilterNode,
    JobSourceNode,
    NodeType,
    NormalizeNode,
    TriggerNode,
    WorkflowNode,
)
from ..platforms.base import ScraperConfig
from ..platforms.orchestrator import ScraperService
from ..utils.cleaning import DESCRIPTION_LIMIT, clean_text, truncate
from .state import ExecutionContext

LOGGER = logging.getLogger(__name__)

MAX_JOBS_PER_SOURCE = 100


class NodeHandler:
    node_type: NodeType

    async def execute(self, node: WorkflowNode, context: ExecutionContext) -> None:
        raise NotImplementedError


class TriggerNodeHandler(NodeHandler):
    node_type = NodeType.TRIGGER

    async def execute(self, node: TriggerNode, context: ExecutionContext) -> None:
        LOGGER.info("Trigger node executed: node=%s workflow=%s", node.id, context.workflow_id)


class JobSourceNodeHandler(NodeHandler):
    node_type = NodeType.JOB_SOURCE

    def __init__(self, scraper_service: ScraperService, timeout: Optional[float] = None):
        self.scraper_service = scraper_service
        self.timeout = timeout

    async def execute(self, node: JobSourceNode, context: ExecutionContext) -> None:
        if not node.source_id:
            raise ConfigurationError(f"Job source node missing sourceId: {node.id}")
        if node.source_id not in self.scraper_service:
            raise ConfigurationError(f"Job source node {node.id} names an unknown source: {node.source_id}")

        LOGGER.info(
            "Scraping jobs: source=%s keywords=%r location=%r node=%s",
            node.source_id, node.keywords, node.location, node.id,
        )
        config = ScraperConfig(
            keywords=node.keywords,
            location=node.location,
            max_results=MAX_JOBS_PER_SOURCE,
            timeout=self.timeout,
        )
        # A failing source comes back as an empty result, not an exception
        results = await self.scraper_service.scrape_multiple([node.source_id], config)
        result = results[node.source_id]

        limited = result.jobs[:MAX_JOBS_PER_SOURCE]
        context.jobs.extend(limited)

        if result.errors:
            LOGGER.warning("Source %s returned errors: %s", node.source_id, "; ".join(result.errors))
        LOGGER.info("Jobs scraped: source=%s count=%d max=%d", node.source_id, len(limited), MAX_JOBS_PER_SOURCE)


class NormalizeNodeHandler(NodeHandler):
    node_type = NodeType.NORMALIZE

    async def execute(self, node: NormalizeNode, context: ExecutionContext) -> None:
        before = len(context.jobs)

        jobs = [
            dataclasses.replace(
                job,
                title=clean_text(job.title),
                company=clean_text(job.company),
                location=clean_text(job.location),
                description=truncate(clean_text(job.description), DESCRIPTION_LIMIT),
            )
            for job in context.jobs
        ]
        if node.remove_duplicates:
            jobs = dedupe_jobs(jobs)
        context.jobs = sort_newest_first(jobs)

        LOGGER.info(
            "Jobs normalized: before=%d after=%d duplicates_removed=%d node=%s",
            before, len(context.jobs), before - len(context.jobs), node.id,
        )


class FilterNodeHandler(NodeHandler):
    node_type = NodeType.FILTER

    async def execute(self, node: FilterNode, context: ExecutionContext) -> None:
        before = len(context.jobs)
        context.jobs = node.criteria.apply(context.jobs)
        LOGGER.info(
            "Jobs filtered: before=%d after=%d criteria=%s node=%s",
            before, len(context.jobs), node.criteria.describe(), node.id,
        )


class DailyEmailNodeHandler(NodeHandler):
    """Delivers the digest. Missing recipients or no jobs is a no-op; a failed delivery is not."""

    node_type = NodeType.DAILY_EMAIL

    def __init__(self, notifier):
        self.notifier = notifier

    async def execute(self, node: DailyEmailNode, context: ExecutionContext) -> None:
        if not node.recipients:
            LOGGER.info("No recipients configured, skipping digest: node=%s", node.id)
            return
        if not context.jobs:
            LOGGER.info("No jobs to send, skipping digest: node=%s", node.id)
            return

        await self.notifier.send_digest(node.recipients, context.jobs, context.workflow_id)


class HandlerRegistry:
    """One handler per node kind; refuses to build if any kind is left without one."""

    def __init__(self, handlers: Iterable[NodeHandler]):
        self._handlers: Dict[NodeType, NodeHandler] = {h.node_type: h for h in handlers}
        missing = [kind.value for kind in NodeType if kind not in self._handlers]
        if missing:
            raise ConfigurationError(f"No handler registered for node type(s): {', '.join(missing)}")

    def handler_for(self, node: WorkflowNode) -> NodeHandler:
        return self._handlers[node.type]

    async def dispatch(self, node: WorkflowNode, context: ExecutionContext) -> None:
        await self.handler_for(node).execute(node, context)


def create_handler_registry(scraper_service: ScraperService, notifier, source_timeout: Optional[float] = None) -> HandlerRegistry:
    return HandlerRegistry([
        TriggerNodeHandler(),
        JobSourceNodeHandler(scraper_service, timeout=source_timeout),
        NormalizeNodeHandler(),
        FilterNodeHandler(),
        DailyEmailNodeHandler(notifier),
    ])
