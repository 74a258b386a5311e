from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path

import typer

from nocodebot.adapters.slack import SlackTransport
from nocodebot.config import Settings, load_settings
from nocodebot.errors import NocodeBotError
from nocodebot.logging_setup import get_logger, setup_logging
from nocodebot.runtime import build_bot, run_bot
from nocodebot.templates import TemplateStore
from nocodebot.workflows import WorkflowRegistry

app = typer.Typer(help="nocode-slackbot - A no-code way to make a Slack bot")
logger = get_logger("cli")


def _load(config: Path) -> Settings:
    try:
        return load_settings(config)
    except NocodeBotError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    json_logs: bool = typer.Option(False, "--json-logs", help="Enable JSON logs"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    setup_logging(json_logs=json_logs, level=logging.DEBUG if debug else logging.INFO)


@app.command()
def run(config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Config file that drives the demo")):
    """Connect to Slack and serve the configured workflows until interrupted."""
    settings = _load(config)
    try:
        templates = TemplateStore.load(settings.demo_dir)
    except NocodeBotError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    transport = SlackTransport(settings.slack_app_token, settings.slack_bot_token)
    bot = build_bot(settings, transport, templates)

    stop = threading.Event()

    def _shutdown(signum, frame):
        logger.info("Caught signal %s. Shutting down...", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        run_bot(bot, stop)
    except NocodeBotError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc


@app.command()
def check(config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Config file that drives the demo")):
    """Validate the config and templates without connecting."""
    settings = _load(config)
    try:
        templates = TemplateStore.load(settings.demo_dir)
    except NocodeBotError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    workflows = WorkflowRegistry.build(settings.workflows)
    typer.echo(f"{len(templates)} templates, {len(workflows)} workflows")
    for workflow in workflows.all():
        status = "ok" if workflow.file in templates else "missing template"
        typer.echo(f"{workflow.name} -> {workflow.file} [{status}]")
