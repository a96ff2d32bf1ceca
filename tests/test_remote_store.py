import json

import pytest
import requests

from meeting_timer.core.exceptions import BackendUnavailableError, SegmentNotFoundError
from meeting_timer.core.models import SegmentDraft
from meeting_timer.core.remote_store import RestSegmentStore

ROW = {
    "id": "seg-1",
    "title": "Backlog Review",
    "duration": 10,
    "days": ["Sunday", "Monday"],
    "start_time": "07:10",
    "end_time": "07:20",
    "day_schedules": [],
    "created_at": "2024-05-01T07:00:00.000000+00:00",
    "updated_at": "2024-05-01T07:00:00.000000+00:00",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _store(*responses):
    session = FakeSession(*responses)
    store = RestSegmentStore("https://example.supabase.co/", "anon-key", session=session, timeout=3)
    return store, session


def test_session_headers_and_endpoint():
    store, session = _store()
    assert store.endpoint == "https://example.supabase.co/rest/v1/meeting_segments"
    assert session.headers["apikey"] == "anon-key"
    assert session.headers["Authorization"] == "Bearer anon-key"


def test_requires_base_url():
    with pytest.raises(ValueError):
        RestSegmentStore("", "key", session=FakeSession())


def test_list_all_orders_by_creation():
    store, session = _store(FakeResponse(payload=[ROW]))
    segments = store.list_all()
    assert [segment.segment_id for segment in segments] == ["seg-1"]
    assert segments[0].days == ("Sunday", "Monday")
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["params"]["order"] == "created_at.asc"
    assert call["timeout"] == 3


def test_create_posts_snake_case_row():
    store, session = _store(FakeResponse(status_code=201, payload=[ROW]))
    draft = SegmentDraft(title="Backlog Review", duration=10, days=("Monday", "Sunday"), start_time="7:10")
    created = store.create(draft)
    assert created.segment_id == "seg-1"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["headers"] == {"Prefer": "return=representation"}
    assert call["json"]["days"] == ["Sunday", "Monday"]
    assert call["json"]["start_time"] == "07:10"
    assert call["json"]["end_time"] == "07:20"


def test_update_sends_only_changed_columns():
    updated_row = dict(ROW, title="Backlog Grooming")
    store, session = _store(FakeResponse(payload=[ROW]), FakeResponse(payload=[updated_row]))
    updated = store.update("seg-1", title="Backlog Grooming")
    assert updated.title == "Backlog Grooming"
    patch = session.calls[1]
    assert patch["method"] == "PATCH"
    assert patch["params"] == {"id": "eq.seg-1"}
    assert patch["json"]["title"] == "Backlog Grooming"
    assert "days" not in patch["json"]


def test_update_unknown_segment():
    store, _session = _store(FakeResponse(payload=[]))
    with pytest.raises(SegmentNotFoundError):
        store.update("missing", title="x")


def test_delete_filters_by_id():
    store, session = _store(FakeResponse(status_code=204))
    store.delete("seg-1")
    assert session.calls[0]["method"] == "DELETE"
    assert session.calls[0]["params"] == {"id": "eq.seg-1"}


def test_transport_error_is_backend_unavailable():
    store, _session = _store(requests.ConnectionError("connection refused"))
    with pytest.raises(BackendUnavailableError, match="Failed to fetch meeting segments"):
        store.list_all()


def test_http_error_message_is_surfaced():
    store, _session = _store(FakeResponse(status_code=500, payload={"message": "database offline"}))
    with pytest.raises(BackendUnavailableError, match="database offline"):
        store.delete("seg-1")


def test_update_duration_patches_recomputed_end_time():
    updated_row = dict(ROW, duration=25, end_time="07:35")
    store, session = _store(FakeResponse(payload=[ROW]), FakeResponse(payload=[updated_row]))
    store.update("seg-1", duration=25)
    patch = session.calls[1]
    assert patch["json"] == {"duration": 25, "end_time": "07:35"}
