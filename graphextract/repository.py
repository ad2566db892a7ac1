"""File-system storage for extracted entities and their extraction cursors."""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Sequence

from .entity import Entity, marshal_json

log = logging.getLogger(__name__)

_CURSOR_SUFFIX = ".cursor"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RepositoryError(Exception):
    """Raised when the repository cannot store or read data."""


def _unix_nanos(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000


class FileRepository:
    """Stores entities as JSON files and keeps the latest id per type and deployment."""

    def __init__(
        self,
        base_dir: str | os.PathLike[str] = "data",
        flush_timeout: float | timedelta = 5.0,
    ) -> None:
        if not str(base_dir):
            base_dir = "data"
        if isinstance(flush_timeout, timedelta):
            flush_timeout = flush_timeout.total_seconds()
        self.flush_timeout = flush_timeout if flush_timeout > 0 else 5.0
        self.base_dir = Path(base_dir)
        self.metadata_dir = self.base_dir / "metadata"
        self.entity_dir = self.base_dir / "entities"
        for directory in (self.metadata_dir, self.entity_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise RepositoryError(f"failed to create directory {directory}: {exc}") from exc

        self._cursors: dict[str, str] = {}
        self._lock = threading.Lock()
        try:
            self._load_cursors()
        except OSError as exc:
            log.warning("failed to load cursors from disk: %s", exc)

    def __enter__(self) -> FileRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _load_cursors(self) -> None:
        for path in self.metadata_dir.iterdir():
            if path.is_dir() or path.suffix != _CURSOR_SUFFIX:
                continue
            try:
                cursor = path.read_text(encoding="utf-8")
            except OSError as exc:
                log.error("failed to read cursor file %s: %s", path, exc)
                continue
            key = path.name[: -len(_CURSOR_SUFFIX)]
            with self._lock:
                self._cursors[key] = cursor
            log.debug("loaded cursor key=%s cursor=%s", key, cursor)

    def _cursor_path(self, key: str) -> Path:
        return self.metadata_dir / f"{key}{_CURSOR_SUFFIX}"

    def _store_cursor(self, key: str, cursor: str) -> None:
        with self._lock:
            self._cursors[key] = cursor
        path = self._cursor_path(key)
        try:
            path.write_text(cursor, encoding="utf-8")
        except OSError as exc:
            log.error("failed to write cursor file key=%s path=%s: %s", key, path, exc)

    def save_entity(self, entity: Entity | None) -> Path:
        """Write one entity to its own JSON file and return the file's path."""
        if entity is None:
            raise RepositoryError("cannot save nil entity")
        key = f"{entity.type}_{entity.deployment}"
        filename = f"{entity.type}_{entity.id}_{_unix_nanos(entity.timestamp)}.json"
        path = self.entity_dir / filename
        try:
            text = json.dumps(entity.to_dict(), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"error marshaling entity: {exc}") from exc
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise RepositoryError(f"error writing entity file: {exc}") from exc
        if entity.id:
            self._store_cursor(key, entity.id)
        return path

    def save_entity_stream(
        self, entity_type: str, deployment: str, entities: Sequence[Entity]
    ) -> Path | None:
        """Write entities as JSON lines to one file; return its path, or None if empty."""
        if not entities:
            return None
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        path = self.entity_dir / f"{entity_type}_{deployment}_{stamp}.jsonl"
        try:
            with path.open("wb") as stream:
                for entity in entities:
                    try:
                        line = marshal_json(entity)
                    except (TypeError, ValueError) as exc:
                        raise RepositoryError(f"error encoding entity: {exc}") from exc
                    stream.write(line + b"\n")
        except OSError as exc:
            raise RepositoryError(f"error creating entity file: {exc}") from exc

        last_id = entities[-1].id
        if last_id:
            self._store_cursor(f"{entity_type}_{deployment}", last_id)
        return path

    def get_latest_cursor(self, entity_type: str, deployment: str) -> str:
        """Return the last stored id for a type and deployment, or an empty string."""
        key = f"{entity_type}_{deployment}"
        with self._lock:
            cursor = self._cursors.get(key)
        if cursor is not None:
            return cursor
        path = self._cursor_path(key)
        try:
            cursor = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise RepositoryError(f"error reading cursor file: {exc}") from exc
        with self._lock:
            self._cursors[key] = cursor
        return cursor

    def close(self) -> None:
        """Release the repository; files are written eagerly so nothing is pending."""