"""
Persistence for the story collection.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Protocol

import yaml

from storyweaver.common import get_logger
from storyweaver.story import Story

logger = get_logger("pipeline.store")


class CollectionStore(Protocol):
    """Key-value style persistence: load on start, save on every change."""

    def load(self) -> list[Story]: ...

    def save(self, stories: Iterable[Story]) -> None: ...


class InMemoryCollectionStore:
    """Keeps the last saved collection in memory."""

    def __init__(self, stories: Iterable[Story] = ()) -> None:
        self._stories: tuple[Story, ...] = tuple(stories)
        self.save_count = 0

    def load(self) -> list[Story]:
        return list(self._stories)

    def save(self, stories: Iterable[Story]) -> None:
        self._stories = tuple(stories)
        self.save_count += 1


class YamlCollectionStore:
    """
    Stores the library as a YAML document with a top-level ``stories`` list.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Story]:
        if not self._path.exists():
            logger.debug("No library file at %s, starting empty", self._path)
            return []

        data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if data is None:
            return []
        if not isinstance(data, Mapping):
            raise ValueError("Library YAML must deserialize to a mapping.")

        entries = data.get("stories") or []
        if not isinstance(entries, list):
            raise ValueError("Library YAML 'stories' must be a list.")
        return [Story.from_dict(entry) for entry in entries]

    def save(self, stories: Iterable[Story]) -> None:
        payload = {"stories": [story.to_dict() for story in stories]}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(
            yaml.safe_dump(payload, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        tmp_path.replace(self._path)
