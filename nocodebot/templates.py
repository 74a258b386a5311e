from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from nocodebot.domain import Template
from nocodebot.errors import TemplateLoadError
from nocodebot.logging_setup import get_logger

logger = get_logger(__name__)


class TemplateStore:
    """Read-only mapping of template filename to Template.

    Templates are keyed by the file's name, never by anything inside the payload.
    """

    def __init__(self, templates: dict[str, Template] | None = None) -> None:
        self._templates: dict[str, Template] = dict(templates or {})

    @classmethod
    def load(cls, directory: str | Path) -> TemplateStore:
        root = Path(directory)
        try:
            entries = sorted(p for p in root.iterdir() if p.is_file())
        except OSError as exc:
            raise TemplateLoadError(root, f"cannot list directory ({exc})") from exc

        templates: dict[str, Template] = {}
        for path in entries:
            try:
                source = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise TemplateLoadError(path, f"cannot read file ({exc})") from exc
            try:
                templates[path.name] = Template.from_source(path.name, source)
            except ValueError as exc:
                raise TemplateLoadError(path, f"invalid message payload ({exc})") from exc

        logger.info("Loaded %d templates from %s", len(templates), root)
        return cls(templates)

    def lookup(self, name: str) -> Template | None:
        return self._templates.get(name)

    def names(self) -> list[str]:
        return sorted(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)
