"""Segment store backed by a hosted PostgREST/Supabase table."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .exceptions import BackendUnavailableError, SegmentNotFoundError
from .models import DayOverride, Segment, SegmentDraft
from .settings import DEFAULT_TABLE

DEFAULT_REQUEST_TIMEOUT = 10.0


class RestSegmentStore:
    """Reads and writes segments through the backend's REST interface.

    Rows use snake_case columns (``start_time``, ``end_time``, ``day_schedules``,
    ``created_at``, ``updated_at``); the backend assigns ``id`` and timestamps.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = DEFAULT_TABLE,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Backend URL is required")
        self._endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )
        self._timeout = timeout
        self._logger = logger or logging.getLogger("meeting_timer.remote_store")

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def list_all(self) -> list[Segment]:
        self._logger.debug("Fetching segments", extra={"event": "remote_segments_fetch"})
        rows = self._request(
            "GET",
            "fetch meeting segments",
            params={"select": "*", "order": "created_at.asc"},
        )
        return [Segment.from_json_dict(row) for row in rows]

    def create(self, draft: SegmentDraft) -> Segment:
        validated = draft.validate()
        self._logger.info(
            "Creating remote segment",
            extra={"event": "remote_segments_create", "title": validated.title},
        )
        rows = self._request(
            "POST",
            "create meeting segment",
            json=validated.to_row(),
            headers={"Prefer": "return=representation"},
        )
        return Segment.from_json_dict(_single(rows, "create meeting segment"))

    def update(self, segment_id: str, **fields: Any) -> Segment:
        current = self._fetch_one(segment_id)
        if fields.get("day_schedules") is not None:
            fields["day_schedules"] = tuple(
                item if isinstance(item, DayOverride) else DayOverride.from_json_dict(item)
                for item in fields["day_schedules"]
            )
        validated = SegmentDraft.from_segment(current).merged(**fields).validate()
        changed = {key: value for key, value in validated.to_row().items() if key in fields or key == "end_time"}
        self._logger.info(
            "Updating remote segment",
            extra={"event": "remote_segments_update", "segment_id": segment_id, "fields": sorted(changed)},
        )
        rows = self._request(
            "PATCH",
            "update meeting segment",
            params={"id": f"eq.{segment_id}"},
            json=changed,
            headers={"Prefer": "return=representation"},
        )
        return Segment.from_json_dict(_single(rows, "update meeting segment"))

    def delete(self, segment_id: str) -> None:
        self._logger.info("Deleting remote segment", extra={"event": "remote_segments_delete", "segment_id": segment_id})
        self._request("DELETE", "delete meeting segment", params={"id": f"eq.{segment_id}"})

    # ------------------------------------------------------------------
    # Internal helpers
    def _fetch_one(self, segment_id: str) -> Segment:
        rows = self._request(
            "GET",
            "fetch meeting segment",
            params={"select": "*", "id": f"eq.{segment_id}"},
        )
        if not rows:
            raise SegmentNotFoundError(f"No segment with id {segment_id}")
        return Segment.from_json_dict(rows[0])

    def _request(self, method: str, action: str, **kwargs: Any) -> list[dict[str, Any]]:
        try:
            response = self._session.request(method, self._endpoint, timeout=self._timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            self._logger.exception(
                "Backend request failed",
                extra={"event": "remote_request_failed", "method": method, "action": action},
            )
            raise BackendUnavailableError(f"Failed to {action}: {_describe(exc)}") from exc

        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise BackendUnavailableError(f"Failed to {action}: invalid JSON response") from exc
        if isinstance(payload, dict):
            return [payload]
        return list(payload)


def _single(rows: list[dict[str, Any]], action: str) -> dict[str, Any]:
    if not rows:
        raise BackendUnavailableError(f"Failed to {action}: backend returned no row")
    return rows[0]


def _describe(exc: requests.RequestException) -> str:
    response = exc.response
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}"
    return str(exc)
