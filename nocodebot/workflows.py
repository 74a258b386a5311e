from __future__ import annotations

from collections.abc import Iterable

from nocodebot.domain import Workflow
from nocodebot.logging_setup import get_logger

logger = get_logger(__name__)


class WorkflowRegistry:
    """Maps workflow names to their definitions. Duplicate names: last one wins."""

    def __init__(self, workflows: dict[str, Workflow] | None = None) -> None:
        self._workflows: dict[str, Workflow] = dict(workflows or {})

    @classmethod
    def build(cls, definitions: Iterable[Workflow]) -> WorkflowRegistry:
        workflows: dict[str, Workflow] = {}
        for definition in definitions:
            if definition.name in workflows:
                logger.warning("Workflow %r defined more than once; using %s", definition.name, definition.file)
            workflows[definition.name] = definition
        return cls(workflows)

    def lookup(self, name: str) -> Workflow | None:
        return self._workflows.get(name)

    def all(self) -> list[Workflow]:
        return list(self._workflows.values())

    def __len__(self) -> int:
        return len(self._workflows)
