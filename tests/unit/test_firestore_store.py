import pytest
import requests

from app.core.errors import NotFoundError, PersistenceError, TokenMintError
from app.db.firestore_store import FirestoreJobStore
from app.models.job_models import Day, JobStatus
from tests.fakes import FakeResponse, FakeSession, StaticToken, connection_error, itinerary_payload

DOC_URL = (
    "https://firestore.example.test/v1/projects/demo"
    "/databases/(default)/documents/itineraries/job-1"
)


def _store(session, credentials=None):
    return FirestoreJobStore(
        credentials=credentials or StaticToken(),
        project_id="demo",
        collection="itineraries",
        base_url="https://firestore.example.test/v1/",
        session=session,
        timeout=5,
    )


def _stored(status="processing"):
    fields = {
        "status": {"stringValue": status},
        "destination": {"stringValue": "Porto"},
        "durationDays": {"integerValue": "2"},
        "createdAt": {"timestampValue": "2024-05-01T10:00:00Z"},
        "completedAt": {"nullValue": None},
        "itinerary": {"arrayValue": {}},
        "error": {"nullValue": None},
    }
    return {"name": "projects/demo/.../job-1", "fields": fields}


def test_create_overwrites_full_processing_document() -> None:
    session = FakeSession(FakeResponse(200, _stored()))
    credentials = StaticToken("tok-1")

    snapshot = _store(session, credentials).create("job-1", "Porto", 2)

    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["url"] == DOC_URL
    assert "params" not in call
    assert call["headers"]["Authorization"] == "Bearer tok-1"
    fields = call["json"]["fields"]
    assert fields["status"] == {"stringValue": "processing"}
    assert fields["durationDays"] == {"integerValue": "2"}
    assert fields["itinerary"] == {"arrayValue": {}}
    assert fields["completedAt"] == {"nullValue": None}
    assert "timestampValue" in fields["createdAt"]
    assert snapshot.status == JobStatus.PROCESSING


def test_patch_terminal_masks_terminal_fields_only() -> None:
    session = FakeSession(FakeResponse(200, _stored("completed")))
    days = [Day.model_validate(d) for d in itinerary_payload(2)["itinerary"]]

    _store(session).patch_terminal("job-1", JobStatus.COMPLETED, days, None)

    call = session.calls[0]
    masked = [value for key, value in call["params"] if key == "updateMask.fieldPaths"]
    assert sorted(masked) == ["completedAt", "error", "itinerary", "status"]
    assert ("currentDocument.exists", "true") in call["params"]
    fields = call["json"]["fields"]
    assert "destination" not in fields
    assert len(fields["itinerary"]["arrayValue"]["values"]) == 2
    assert fields["error"] == {"nullValue": None}


def test_patch_terminal_refuses_processing() -> None:
    with pytest.raises(ValueError):
        _store(FakeSession()).patch_terminal("job-1", JobStatus.PROCESSING, [], None)


def test_read_decodes_snapshot() -> None:
    session = FakeSession(FakeResponse(200, _stored()))
    snapshot = _store(session).read("job-1")
    assert session.calls[0]["method"] == "GET"
    assert snapshot.destination == "Porto"
    assert snapshot.itinerary == []


def test_read_missing_document_is_not_found() -> None:
    session = FakeSession(FakeResponse(404, {"error": {"code": 404, "message": "Document not found", "status": "NOT_FOUND"}}))
    with pytest.raises(NotFoundError):
        _store(session).read("job-1")


def test_read_rejects_ids_with_path_segments() -> None:
    session = FakeSession()
    credentials = StaticToken()
    with pytest.raises(NotFoundError):
        _store(session, credentials).read("other/doc")
    assert credentials.minted == 0
    assert session.calls == []


@pytest.mark.parametrize(
    "job_id, encoded",
    [("job-1#x", "job-1%23x"), ("job-1?a=b", "job-1%3Fa%3Db"), ("job 1", "job%201")],
)
def test_read_percent_encodes_job_id(job_id, encoded) -> None:
    session = FakeSession(FakeResponse(404, {"error": {"code": 404, "status": "NOT_FOUND"}}))

    with pytest.raises(NotFoundError):
        _store(session).read(job_id)

    url = session.calls[0]["url"]
    assert url != DOC_URL
    assert url == DOC_URL[: -len("job-1")] + encoded


def test_default_transport_is_not_a_shared_session() -> None:
    store = FirestoreJobStore(credentials=StaticToken(), project_id="demo")
    assert store.session is requests


def test_server_error_is_persistence_error_without_token() -> None:
    session = FakeSession(FakeResponse(503, {"error": {"code": 503, "message": "The service is currently unavailable."}}))

    with pytest.raises(PersistenceError) as exc:
        _store(session, StaticToken("secret-token")).read("job-1")

    assert not isinstance(exc.value, NotFoundError)
    assert "503" in exc.value.message
    assert "secret-token" not in exc.value.message


def test_transport_error_is_persistence_error() -> None:
    with pytest.raises(PersistenceError, match="unreachable"):
        _store(FakeSession(connection_error())).create("job-1", "Porto", 2)


def test_each_operation_mints_a_fresh_token() -> None:
    session = FakeSession(FakeResponse(200, _stored()), FakeResponse(200, _stored()))
    credentials = StaticToken()
    store = _store(session, credentials)

    store.read("job-1")
    store.read("job-1")

    assert credentials.minted == 2


def test_token_failure_propagates() -> None:
    session = FakeSession()
    credentials = StaticToken(error=TokenMintError("Token exchange failed with HTTP 401: invalid_client"))
    with pytest.raises(TokenMintError):
        _store(session, credentials).create("job-1", "Porto", 2)
    assert session.calls == []


def test_undecodable_document_is_persistence_error() -> None:
    session = FakeSession(FakeResponse(200, _stored("exploded")))
    with pytest.raises(PersistenceError, match="could not be decoded"):
        _store(session).read("job-1")
