from __future__ import annotations

import threading
from dataclasses import dataclass

from nocodebot.adapters.base import Transport
from nocodebot.config import Settings
from nocodebot.dispatcher import Dispatcher
from nocodebot.handlers import CommandHandler, InteractionHandler
from nocodebot.ledger import CompletionLedger
from nocodebot.logging_setup import get_logger
from nocodebot.templates import TemplateStore
from nocodebot.workflows import WorkflowRegistry

logger = get_logger(__name__)


@dataclass
class Bot:
    settings: Settings
    transport: Transport
    templates: TemplateStore
    workflows: WorkflowRegistry
    ledger: CompletionLedger
    dispatcher: Dispatcher


def build_bot(settings: Settings, transport: Transport, templates: TemplateStore | None = None) -> Bot:
    """Wire the stores and handlers around ``transport``.

    Loads templates from ``settings.demo_dir`` unless a store is given; a
    TemplateLoadError here is fatal.
    """
    templates = templates if templates is not None else TemplateStore.load(settings.demo_dir)
    workflows = WorkflowRegistry.build(settings.workflows)
    ledger = CompletionLedger()
    commands = CommandHandler(
        transport,
        templates,
        workflows,
        ledger,
        summary_command=settings.summary_command,
        workflow_command=settings.workflow_command,
    )
    interactions = InteractionHandler(transport, templates, ledger)
    dispatcher = Dispatcher(transport, commands, interactions)
    return Bot(
        settings=settings,
        transport=transport,
        templates=templates,
        workflows=workflows,
        ledger=ledger,
        dispatcher=dispatcher,
    )


def run_bot(bot: Bot, stop: threading.Event) -> None:
    """Run the event loop on a worker thread until ``stop`` is set."""
    worker = threading.Thread(target=bot.dispatcher.run, args=(stop,), name="nocodebot-dispatcher", daemon=True)
    worker.start()
    try:
        bot.transport.connect()
        stop.wait()
    finally:
        stop.set()
        logger.info("Shutting down...")
        bot.transport.close()
        worker.join(timeout=5.0)
