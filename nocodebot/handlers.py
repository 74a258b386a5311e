from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from nocodebot.adapters.base import Transport
from nocodebot.domain import CompletionRecord, Event, InteractionCallback, SlashCommand
from nocodebot.errors import TransportError
from nocodebot.ledger import CompletionLedger
from nocodebot.logging_setup import get_logger
from nocodebot.templates import TemplateStore
from nocodebot.workflows import WorkflowRegistry


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 with second precision; UTC is written as ``Z``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.isoformat(timespec="seconds").replace("+00:00", "Z")


def section_block(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def simple_payload(text: str) -> dict[str, Any]:
    return {"blocks": [section_block(text)]}


def summary_line(record: CompletionRecord) -> str:
    return f"{record.user} | {format_timestamp(record.timestamp)} | selected {record.value}"


class CommandHandler:
    """Handles the summary and workflow slash commands."""

    def __init__(
        self,
        transport: Transport,
        templates: TemplateStore,
        workflows: WorkflowRegistry,
        ledger: CompletionLedger,
        *,
        summary_command: str = "/summary",
        workflow_command: str = "/workflow",
    ) -> None:
        self.transport = transport
        self.templates = templates
        self.workflows = workflows
        self.ledger = ledger
        self._routes: dict[str, Callable[[str, SlashCommand], None]] = {
            summary_command: self._summary,
            workflow_command: self._workflow,
        }
        self._logger = get_logger(self.__class__.__name__)

    def supports(self, command: str) -> bool:
        return command in self._routes

    def handle(self, event: Event) -> None:
        cmd = event.command
        if cmd is None or event.request_id is None:
            self._logger.error("Slash command event without command data: %s", event.raw_type)
            return
        self._routes[cmd.command](event.request_id, cmd)

    # Internals -----------------------------------------------------------------
    def _summary(self, request_id: str, cmd: SlashCommand) -> None:
        blocks = [section_block(summary_line(r)) for r in self.ledger.snapshot()]
        self.transport.ack(request_id, {"blocks": blocks})

    def _workflow(self, request_id: str, cmd: SlashCommand) -> None:
        workflow = self.workflows.lookup(cmd.text)
        if workflow is None:
            self.transport.ack(request_id, simple_payload(f"could not find workflow {cmd.text}"))
            return

        template = self.templates.lookup(workflow.file)
        if template is None:
            # Left unacknowledged on purpose; the workflow exists but cannot be rendered.
            self._logger.debug("Message %s is not available", workflow.file)
            return
        self.transport.ack(request_id, template.as_payload())


class InteractionHandler:
    """Records button clicks and answers with the follow-up template."""

    def __init__(
        self,
        transport: Transport,
        templates: TemplateStore,
        ledger: CompletionLedger,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.transport = transport
        self.templates = templates
        self.ledger = ledger
        self._clock = clock or _utcnow
        self._logger = get_logger(self.__class__.__name__)

    def handle(self, event: Event) -> None:
        callback = event.interaction
        if event.request_id is None:
            self._logger.error("Interactive event without request id")
            return
        if callback is None or not callback.is_block_actions:
            self.transport.ack(event.request_id)
            return
        if not callback.actions:
            self._logger.warning("block_actions callback from %s carried no actions", callback.user_name)
            self.transport.ack(event.request_id)
            return
        self._block_action(event.request_id, callback)

    # Internals -----------------------------------------------------------------
    def _block_action(self, request_id: str, callback: InteractionCallback) -> None:
        # Only the first action of a batch is honored.
        action = callback.actions[0]
        self.ledger.record_action(user=callback.user_name, value=action.value, timestamp=self._clock())
        self._logger.debug("%s selected %s", callback.user_name, action.value)

        template = self.templates.lookup(action.action_id)
        if template is None:
            self._logger.debug("No message for action %s; have %s", action.action_id, sorted(self.templates))
            self.transport.ack(request_id, simple_payload(f"could not find message callback {action.value}"))
            return

        self.transport.ack(request_id, {})
        try:
            self.transport.post_message(callback.channel_id, template.blocks, template.text)
        except TransportError as exc:
            self._logger.error("error sending message: %s", exc)
