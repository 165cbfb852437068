# jobflow/runtime.py
from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .graph.executor import WorkflowExecutor
from .graph.handlers import create_handler_registry
from .notifications.mailer import create_notifier
from .platforms.orchestrator import ScraperService, create_scraper_service
from .scheduling.scheduler import WorkflowScheduler
from .utils.persistence import JsonFileStore


@dataclass
class Engine:
    settings: Settings
    store: object
    scrapers: ScraperService
    executor: WorkflowExecutor
    scheduler: WorkflowScheduler


def create_engine(settings: Optional[Settings] = None, store=None, scrapers=None, notifier=None) -> Engine:
    """Wires the store, sources, notifier, executor and scheduler from one Settings object."""
    settings = settings or Settings.from_env()
    store = store if store is not None else JsonFileStore(settings.store_path)
    scrapers = scrapers if scrapers is not None else create_scraper_service(settings)
    notifier = notifier if notifier is not None else create_notifier(settings)

    handlers = create_handler_registry(scrapers, notifier, source_timeout=settings.scraper_timeout)
    executor = WorkflowExecutor(store, handlers)
    scheduler = WorkflowScheduler(
        executor,
        store,
        timezone=settings.scheduler_timezone,
        poll_seconds=settings.scheduler_poll_seconds,
    )
    return Engine(settings=settings, store=store, scrapers=scrapers, executor=executor, scheduler=scheduler)
