from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

from nocodebot.adapters.mock import MockTransport
from nocodebot.dispatcher import Dispatcher
from nocodebot.domain import Event, EventType, Template, Workflow
from nocodebot.handlers import CommandHandler, InteractionHandler, simple_payload
from nocodebot.ledger import CompletionLedger
from nocodebot.templates import TemplateStore
from nocodebot.workflows import WorkflowRegistry

T0 = datetime(2024, 5, 1, 12, 30, 15, tzinfo=UTC)

STEP2 = '{"text": "step two", "blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": "Step 2"}}]}'
WELCOME = '{"blocks": [{"type": "actions", "elements": [{"type": "button", "action_id": "step2", "value": "go"}]}]}'


def _mk_dispatcher(
    templates: dict[str, str] | None = None,
    workflows: list[Workflow] | None = None,
    *,
    fail_posts: bool = False,
) -> tuple[Dispatcher, MockTransport, CompletionLedger]:
    transport = MockTransport(fail_posts=fail_posts)
    store = TemplateStore({name: Template.from_source(name, src) for name, src in (templates or {}).items()})
    registry = WorkflowRegistry.build(workflows or [])
    ledger = CompletionLedger()
    commands = CommandHandler(transport, store, registry, ledger)
    interactions = InteractionHandler(transport, store, ledger, clock=lambda: T0)
    return Dispatcher(transport, commands, interactions), transport, ledger


def _command(command: str, text: str = "", request_id: str = "r1") -> Event:
    return Event.from_request(
        "slash_commands", request_id, {"command": command, "text": text, "user_name": "alice", "channel_id": "C1"}
    )


def _click(action_id: str, value: str, *, user: str = "alice", request_id: str = "r1", extra: int = 0) -> Event:
    actions = [{"action_id": action_id, "value": value}]
    actions += [{"action_id": f"other{i}", "value": f"v{i}"} for i in range(extra)]
    payload = {
        "type": "block_actions",
        "user": {"id": "U1", "name": user, "username": user},
        "channel": {"id": "C42"},
        "actions": actions,
    }
    return Event.from_request("interactive", request_id, payload)


def _lines(payload: dict) -> list[str]:
    return [b["text"]["text"] for b in payload["blocks"]]


def test_summary_on_empty_ledger():
    dispatcher, transport, _ = _mk_dispatcher()
    dispatcher.dispatch(_command("/summary"))

    assert len(transport.acks) == 1
    assert transport.acks[0].request_id == "r1"
    assert _lines(transport.acks[0].payload) == []


def test_summary_lists_completions():
    dispatcher, transport, ledger = _mk_dispatcher()
    ledger.record_action(user="alice", value="optionA", timestamp=T0)

    dispatcher.dispatch(_command("/summary"))

    assert _lines(transport.acks[0].payload) == ["alice | 2024-05-01T12:30:15Z | selected optionA"]


def test_unknown_workflow_reports_error():
    dispatcher, transport, _ = _mk_dispatcher()
    dispatcher.dispatch(_command("/workflow", "onboarding"))

    assert len(transport.acks) == 1
    assert transport.acks[0].payload == simple_payload("could not find workflow onboarding")
    assert _lines(transport.acks[0].payload) == ["could not find workflow onboarding"]


def test_workflow_acks_with_template_payload():
    dispatcher, transport, _ = _mk_dispatcher(
        templates={"welcome.json": WELCOME},
        workflows=[Workflow(name="onboarding", file="welcome.json")],
    )
    dispatcher.dispatch(_command("/workflow", "  onboarding "))

    assert transport.acks[0].payload == Template.from_source("welcome.json", WELCOME).payload


def test_workflow_with_missing_template_is_not_acked(caplog):
    dispatcher, transport, ledger = _mk_dispatcher(workflows=[Workflow(name="onboarding", file="gone.json")])
    with caplog.at_level(logging.DEBUG):
        dispatcher.dispatch(_command("/workflow", "onboarding"))

    assert transport.acks == []
    assert len(ledger) == 0
    assert "gone.json" in caplog.text


def test_unrecognized_command_is_ignored():
    dispatcher, transport, ledger = _mk_dispatcher()
    dispatcher.dispatch(_command("/deploy", "prod"))

    assert transport.acks == []
    assert len(ledger) == 0


def test_click_without_followup_records_and_reports():
    dispatcher, transport, ledger = _mk_dispatcher()
    dispatcher.dispatch(_click("step2", "optionB"))

    assert len(ledger) == 1
    record = ledger.snapshot()[0]
    assert (record.user, record.value, record.timestamp) == ("alice", "optionB", T0)
    assert len(transport.acks) == 1
    assert "optionB" in _lines(transport.acks[0].payload)[0]
    assert transport.posts == []


def test_click_with_followup_acks_then_posts():
    dispatcher, transport, ledger = _mk_dispatcher(templates={"step2": STEP2})
    dispatcher.dispatch(_click("step2", "optionB"))

    assert len(ledger) == 1
    assert [(a.request_id, a.payload) for a in transport.acks] == [("r1", {})]
    assert len(transport.posts) == 1
    post = transport.posts[0]
    assert post.channel_id == "C42"
    assert post.blocks == Template.from_source("step2", STEP2).blocks
    assert post.text == "step two"


def test_only_first_action_of_batch_is_honored():
    dispatcher, transport, ledger = _mk_dispatcher(templates={"step2": STEP2})
    dispatcher.dispatch(_click("step2", "first", extra=2))

    assert [r.value for r in ledger.snapshot()] == ["first"]
    assert len(transport.posts) == 1


def test_post_failure_is_logged_not_raised(caplog):
    dispatcher, transport, ledger = _mk_dispatcher(templates={"step2": STEP2}, fail_posts=True)
    with caplog.at_level(logging.ERROR):
        dispatcher.dispatch(_click("step2", "optionB"))

    assert len(ledger) == 1
    assert [a.payload for a in transport.acks] == [{}]
    assert transport.posts == []
    assert "error sending message" in caplog.text


def test_other_interaction_types_ack_empty():
    dispatcher, transport, ledger = _mk_dispatcher()
    event = Event.from_request("interactive", "r9", {"type": "view_submission", "user": {"name": "alice"}})
    dispatcher.dispatch(event)

    assert [(a.request_id, a.payload) for a in transport.acks] == [("r9", None)]
    assert len(ledger) == 0


def test_block_actions_without_actions_ack_empty():
    dispatcher, transport, ledger = _mk_dispatcher()
    event = Event.from_request("interactive", "r9", {"type": "block_actions", "user": {"name": "alice"}})
    dispatcher.dispatch(event)

    assert [a.payload for a in transport.acks] == [None]
    assert len(ledger) == 0


def test_events_api_is_acked_without_payload():
    dispatcher, transport, _ = _mk_dispatcher()
    dispatcher.dispatch(Event.from_request("events_api", "e1", {"event": {"type": "app_mention"}}))

    assert [(a.request_id, a.payload) for a in transport.acks] == [("e1", None)]


def test_lifecycle_events_track_connection():
    dispatcher, transport, _ = _mk_dispatcher()
    dispatcher.dispatch(Event.lifecycle(EventType.CONNECTING))
    assert dispatcher.connected is False
    dispatcher.dispatch(Event.lifecycle(EventType.CONNECTED))
    assert dispatcher.connected is True
    dispatcher.dispatch(Event.lifecycle(EventType.CONNECTION_ERROR, error="boom"))
    assert dispatcher.connected is False
    assert transport.acks == []


def test_unknown_event_type_warns(caplog):
    dispatcher, transport, _ = _mk_dispatcher()
    with caplog.at_level(logging.WARNING):
        dispatcher.dispatch(Event.from_request("hello_world", "x1", {}))

    assert transport.acks == []
    assert "hello_world" in caplog.text


def test_run_processes_in_order_and_survives_handler_errors(monkeypatch, caplog):
    dispatcher, transport, ledger = _mk_dispatcher(templates={"step2": STEP2})
    original = dispatcher.commands.handle

    def flaky(event: Event) -> None:
        if event.request_id == "bad":
            raise RuntimeError("kaboom")
        original(event)

    monkeypatch.setattr(dispatcher.commands, "handle", flaky)
    for event in [
        Event.lifecycle(EventType.CONNECTED),
        _click("step2", "a", request_id="c1"),
        _command("/summary", request_id="bad"),
        _click("step2", "b", request_id="c2"),
        _command("/summary", request_id="s1"),
    ]:
        transport.push(event)

    with caplog.at_level(logging.ERROR):
        dispatcher.run()

    assert [a.request_id for a in transport.acks] == ["c1", "c2", "s1"]
    assert _lines(transport.acks[-1].payload) == [
        "alice | 2024-05-01T12:30:15Z | selected a",
        "alice | 2024-05-01T12:30:15Z | selected b",
    ]
    assert "kaboom" in caplog.text
    assert transport.get_state_snapshot()["pending"] == 0


def test_run_honors_stop_token():
    dispatcher, transport, _ = _mk_dispatcher()
    transport.push(_command("/summary"))
    stop = threading.Event()
    stop.set()

    dispatcher.run(stop)

    assert transport.acks == []


def test_every_event_type_has_a_route():
    dispatcher, _, _ = _mk_dispatcher()
    assert set(dispatcher._routes) == set(EventType)


def test_events_api_with_null_event_is_still_acked():
    dispatcher, transport, _ = _mk_dispatcher()
    dispatcher.dispatch(Event.from_request("events_api", "e2", {"event": None}))

    assert [(a.request_id, a.payload) for a in transport.acks] == [("e2", None)]


def test_connection_state_shapes_lifecycle_logs(caplog):
    dispatcher, _, _ = _mk_dispatcher()
    with caplog.at_level(logging.INFO):
        dispatcher.dispatch(Event.lifecycle(EventType.CONNECTION_ERROR, error="dns"))
        dispatcher.dispatch(Event.lifecycle(EventType.CONNECTED))
        dispatcher.dispatch(Event.lifecycle(EventType.CONNECTED))
        dispatcher.dispatch(Event.lifecycle(EventType.CONNECTION_ERROR, error="reset"))

    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "Connection failed. Retrying later... (dns)",
        "Connected to Slack with Socket Mode.",
        "Connected to Slack with Socket Mode (connection refreshed).",
        "Connection lost. Retrying later... (reset)",
    ]
