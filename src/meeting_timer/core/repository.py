"""Persistence layer for meeting segments."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Iterable, Protocol, Sequence

import portalocker

from .exceptions import PersistenceError, SegmentNotFoundError, SegmentValidationError
from .models import DayOverride, Segment, SegmentDraft
from .paths import segments_path


class SegmentStore(Protocol):
    """Storage contract consumed by the application; analytics never calls it directly."""

    def list_all(self) -> list[Segment]:
        ...

    def create(self, draft: SegmentDraft) -> Segment:
        ...

    def update(self, segment_id: str, **fields: Any) -> Segment:
        ...

    def delete(self, segment_id: str) -> None:
        ...


DEFAULT_SEGMENTS: tuple[SegmentDraft, ...] = (
    SegmentDraft(
        title="Backlog Review",
        duration=10,
        days=("Sunday", "Monday"),
        start_time="07:10",
        end_time="07:20",
    ),
    SegmentDraft(
        title="Yesterday Problems",
        duration=10,
        days=("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"),
        start_time="07:11",
        end_time="07:21",
    ),
    SegmentDraft(
        title="Unsafe Conditions",
        duration=15,
        days=("Wednesday",),
        start_time="07:21",
        end_time="07:36",
    ),
    SegmentDraft(
        title="YT Prop Activities",
        duration=15,
        days=("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"),
        start_time="07:36",
        end_time="07:50",
    ),
)


def seed_default_segments(store: SegmentStore) -> list[Segment]:
    """Populate an empty store with the stock FMDS agenda; returns what was created."""
    if store.list_all():
        return []
    return [store.create(draft) for draft in DEFAULT_SEGMENTS]


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


class SegmentsRepository:
    """Stores segments as JSON lines in a lock-protected local file, in creation order."""

    def __init__(
        self,
        path: Path | None = None,
        logger: logging.Logger | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        self._path = Path(path) if path is not None else segments_path()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_timeout = lock_timeout
        self._logger = logger or logging.getLogger("meeting_timer.repository")
        self._ensure_file()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Public API
    def list_all(self) -> list[Segment]:
        self._logger.debug("Loading all segments", extra={"event": "segments_load_all"})
        return self._deserialize_segments(self._read_lines())

    def create(self, draft: SegmentDraft) -> Segment:
        validated = draft.validate()
        timestamp = _now()
        segment = validated.to_segment(created_at=timestamp, updated_at=timestamp)
        self._logger.info(
            "Creating segment",
            extra={
                "event": "segments_create",
                "segment_id": segment.segment_id,
                "title": segment.title,
                "duration": segment.duration,
                "days": list(segment.days),
            },
        )
        line = json.dumps(segment.to_json_dict(), separators=(",", ":"))

        try:
            with self._lock("a+", portalocker.LockFlags.EXCLUSIVE) as locked_file:
                locked_file.seek(0, os.SEEK_END)
                start_position = locked_file.tell()
                try:
                    locked_file.write(line)
                    locked_file.write("\n")
                    locked_file.flush()
                    os.fsync(locked_file.fileno())
                except Exception as exc:  # pragma: no cover - filesystem dependent
                    locked_file.seek(start_position)
                    locked_file.truncate()
                    locked_file.flush()
                    os.fsync(locked_file.fileno())
                    self._logger.exception("Failed to write segment; truncated partial data")
                    raise PersistenceError("Unable to persist segment") from exc
        except PersistenceError:
            raise
        except Exception as exc:
            self._logger.exception("Unexpected error while writing segment")
            raise PersistenceError("Unable to persist segment") from exc

        return segment

    def update(self, segment_id: str, **fields: Any) -> Segment:
        if "day_schedules" in fields and fields["day_schedules"] is not None:
            fields["day_schedules"] = tuple(_coerce_override(item) for item in fields["day_schedules"])
        self._logger.info(
            "Updating segment",
            extra={"event": "segments_update", "segment_id": segment_id, "fields": sorted(fields)},
        )

        try:
            with self._lock("r+", portalocker.LockFlags.EXCLUSIVE) as locked_file:
                locked_file.seek(0)
                lines = [line.rstrip("\n") for line in locked_file if line.strip()]
                segments = self._deserialize_segments(lines)

                index = _index_of(segments, segment_id)
                current = segments[index]
                validated = SegmentDraft.from_segment(current).merged(**fields).validate()
                updated = validated.to_segment(
                    segment_id=current.segment_id,
                    created_at=current.created_at,
                    updated_at=_now(),
                )
                segments[index] = updated
                self._rewrite(locked_file, segments)
        except (SegmentNotFoundError, SegmentValidationError):
            raise
        except Exception as exc:
            self._logger.exception(
                "Failed to update segment",
                extra={"event": "segments_update_failed", "segment_id": segment_id},
            )
            raise PersistenceError("Unable to update segment") from exc

        return updated

    def delete(self, segment_id: str) -> None:
        self._logger.info("Deleting segment", extra={"event": "segments_delete", "segment_id": segment_id})
        try:
            with self._lock("r+", portalocker.LockFlags.EXCLUSIVE) as locked_file:
                locked_file.seek(0)
                lines = [line.rstrip("\n") for line in locked_file if line.strip()]
                segments = self._deserialize_segments(lines)
                index = _index_of(segments, segment_id)
                del segments[index]
                self._rewrite(locked_file, segments)
        except SegmentNotFoundError:
            raise
        except Exception as exc:
            self._logger.exception(
                "Failed to delete segment",
                extra={"event": "segments_delete_failed", "segment_id": segment_id},
            )
            raise PersistenceError("Unable to delete segment") from exc

    def replace_all(self, segments: Sequence[Segment]) -> None:
        try:
            with self._lock("w", portalocker.LockFlags.EXCLUSIVE) as locked_file:
                self._rewrite(locked_file, segments)
        except Exception as exc:
            self._logger.exception("Failed to replace segments", extra={"event": "segments_replace_failed"})
            raise PersistenceError("Unable to persist segments") from exc

    # ------------------------------------------------------------------
    # Internal helpers
    def _lock(self, mode: str, flags: portalocker.LockFlags) -> portalocker.Lock:
        return portalocker.Lock(
            self._path,
            mode=mode,
            timeout=self._lock_timeout,
            flags=flags,
            encoding="utf-8",
        )

    def _rewrite(self, locked_file: IO[str], segments: Sequence[Segment]) -> None:
        locked_file.seek(0)
        locked_file.truncate()
        for segment in segments:
            locked_file.write(json.dumps(segment.to_json_dict(), separators=(",", ":")))
            locked_file.write("\n")
        locked_file.flush()
        os.fsync(locked_file.fileno())

    def _ensure_file(self) -> None:
        if not self._path.exists():
            self._logger.debug(
                "Creating segments file",
                extra={"event": "segments_file_init", "path": str(self._path)},
            )
            self._path.touch()

    def _read_lines(self) -> list[str]:
        try:
            with self._lock("r", portalocker.LockFlags.SHARED) as locked_file:
                return [line.rstrip("\n") for line in locked_file if line.strip()]
        except FileNotFoundError:
            self._ensure_file()
            return []
        except Exception as exc:  # pragma: no cover - filesystem dependent
            self._logger.exception("Failed reading segments file")
            raise PersistenceError("Unable to read segments") from exc

    def _deserialize_segments(self, lines: Iterable[str]) -> list[Segment]:
        segments: list[Segment] = []
        for index, line in enumerate(lines, start=1):
            try:
                payload = json.loads(line)
                segments.append(Segment.from_json_dict(payload))
            except (ValueError, KeyError, TypeError):
                self._logger.exception(
                    "Skipping malformed segment",
                    extra={"event": "segments_skip_invalid", "line_index": index},
                )
        return segments


def _index_of(segments: Sequence[Segment], segment_id: str) -> int:
    for index, segment in enumerate(segments):
        if segment.segment_id == segment_id:
            return index
    raise SegmentNotFoundError(f"No segment with id {segment_id}")


def _coerce_override(item: DayOverride | dict[str, Any]) -> DayOverride:
    if isinstance(item, DayOverride):
        return item
    return DayOverride.from_json_dict(item)
