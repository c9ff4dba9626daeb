import logging
from urllib.parse import parse_qs, urlsplit

from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

import campus_events.database as database
from campus_events.main import app
from campus_events.models import Registration
from campus_events.repositories import EventRepository
from campus_events.services import storage
from campus_events.services.storage import get_upload_broker
from sqlalchemy import func, select

EVENT = {
    "title": "Spring Concert",
    "description": "Student bands on the quad.",
    "date": "2030-04-12T19:30:00Z",
    "location": "Main Quad",
    "imageUrl": "https://d111111abcdef8.cloudfront.net/uploads/concert.jpg",
}


def _create_event(client, **overrides):
    body = {**EVENT, **overrides}
    response = client.post("/api/events", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_create_and_fetch_event(client):
    created = _create_event(client)

    assert created["id"]
    assert created["title"] == "Spring Concert"
    assert created["imageUrl"] == EVENT["imageUrl"]
    assert created["date"] == "2030-04-12T19:30:00+00:00"

    fetched = client.get(f"/api/events/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


def test_create_event_missing_field_is_400(client):
    body = {k: v for k, v in EVENT.items() if k != "imageUrl"}
    response = client.post("/api/events", json=body)

    assert response.status_code == 400
    assert "imageUrl" in response.json()["error"]


def test_get_unknown_event_is_404(client):
    response = client.get("/api/events/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}

    assert client.get("/api/events/bogus").status_code == 404


def test_list_events_ascending_by_date(client):
    _create_event(client, title="Late", date="2030-12-01T10:00:00Z")
    _create_event(client, title="Early", date="2030-02-01T10:00:00Z")
    _create_event(client, title="Middle", date="2030-06-01T10:00:00+02:00")

    titles = [e["title"] for e in client.get("/api/events").json()]
    assert titles == ["Early", "Middle", "Late"]


def test_partial_update_preserves_other_fields(client):
    created = _create_event(client)

    response = client.put(
        f"/api/events/{created['id']}",
        json={"location": "Concert Hall", "description": None},
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["location"] == "Concert Hall"
    assert updated["description"] == created["description"]
    assert updated["title"] == created["title"]
    assert updated["date"] == created["date"]
    assert updated["imageUrl"] == created["imageUrl"]


def test_update_unknown_event_is_404(client):
    response = client.put(
        "/api/events/00000000-0000-0000-0000-000000000000", json={"title": "Nope"}
    )
    assert response.status_code == 404


def test_registration_flow(client):
    event = _create_event(client)

    response = client.post(
        f"/api/events/{event['id']}/register",
        json={"name": "Ada Lovelace", "email": "ada@example.edu"},
    )
    assert response.status_code == 201
    registration = response.json()
    assert registration["eventId"] == event["id"]
    assert registration["registeredAt"]

    listed = client.get(f"/api/events/{event['id']}/registrations")
    assert listed.status_code == 200
    assert [r["id"] for r in listed.json()] == [registration["id"]]


def test_register_requires_name_and_email(client):
    event = _create_event(client)

    response = client.post(f"/api/events/{event['id']}/register", json={"email": "a@b.edu"})

    assert response.status_code == 400
    assert "name" in response.json()["error"]


def test_register_for_unknown_event_is_404(client):
    response = client.post(
        "/api/events/00000000-0000-0000-0000-000000000000/register",
        json={"name": "Ada", "email": "ada@example.edu"},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


def test_delete_event_cascades_to_registrations(client):
    event = _create_event(client)
    for name in ("ada", "grace"):
        client.post(
            f"/api/events/{event['id']}/register",
            json={"name": name, "email": f"{name}@example.edu"},
        )

    assert client.delete(f"/api/events/{event['id']}").status_code == 204
    assert client.get(f"/api/events/{event['id']}").status_code == 404
    assert client.get(f"/api/events/{event['id']}/registrations").status_code == 404

    async def _count():
        async with database.SessionLocal() as session:
            result = await session.execute(select(func.count(Registration.id)))
            return result.scalar_one()

    assert client.portal.call(_count) == 0


def test_presigned_upload_url(client):
    response = client.get(
        "/api/uploads/presigned-url",
        params={"fileName": "poster.final.PNG", "fileType": "image/png"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["key"].startswith("uploads/")
    assert body["key"].endswith(".PNG")
    assert body["publicUrl"] == f"https://d111111abcdef8.cloudfront.net/{body['key']}"

    upload = urlsplit(body["uploadUrl"])
    assert upload.path.endswith(body["key"])
    assert parse_qs(upload.query)["X-Amz-Expires"] == ["300"]


def test_presigned_upload_url_requires_params(client):
    response = client.get("/api/uploads/presigned-url", params={"fileName": "poster.png"})

    assert response.status_code == 400
    assert "fileType" in response.json()["error"]


def test_presigned_upload_failure_is_500(client):
    class FailingBroker:
        def presign_upload(self, filename, content_type):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")

    app.dependency_overrides[get_upload_broker] = lambda: FailingBroker()

    response = client.get(
        "/api/uploads/presigned-url",
        params={"fileName": "poster.png", "fileType": "image/png"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate upload URL"}


def test_rich_text_description_stored_as_sent(client):
    description = "<p>Doors at 7.</p>\n<script>countdown()</script>"
    created = _create_event(client, description=description)

    assert created["description"] == description
    assert client.get(f"/api/events/{created['id']}").json()["description"] == description


def test_multiline_title_is_accepted(client):
    created = _create_event(client, title="Spring Concert\nEncore Night")

    assert created["title"] == "Spring Concert\nEncore Night"


def test_blank_title_is_400(client):
    response = client.post("/api/events", json={**EVENT, "title": "   "})

    assert response.status_code == 400
    assert "title" in response.json()["error"]


def test_not_found_logs_requested_id(client, caplog):
    caplog.set_level(logging.INFO, logger="campus_events")

    client.get("/api/events/11111111-2222-3333-4444-555555555555")

    assert "11111111-2222-3333-4444-555555555555" in caplog.text


def test_list_events_database_failure_is_500(client, monkeypatch):
    async def _broken(self):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(EventRepository, "list_events", _broken)

    response = client.get("/api/events")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch events"}


def test_presigned_upload_without_config_is_500(client, monkeypatch):
    app.dependency_overrides.pop(get_upload_broker, None)
    for name in ("S3_BUCKET", "S3_REGION", "CLOUDFRONT_DOMAIN"):
        monkeypatch.delenv(name, raising=False)
    storage.reset_upload_broker()

    try:
        response = TestClient(app, raise_server_exceptions=False).get(
            "/api/uploads/presigned-url",
            params={"fileName": "poster.png", "fileType": "image/png"},
        )
    finally:
        storage.reset_upload_broker()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
