"""
Tests for the chat room REST API
Exercises the HTTP surface end to end against the in-memory store, with time
driven by FakeClock and sweeps triggered directly.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from chatroom.api.server import create_app
from chatroom.core.exceptions import StoreError
from chatroom.infrastructure.container import Container


@pytest.fixture
def container(memory_settings, clock):
    return Container(memory_settings, clock=clock)


@pytest.fixture
def test_client(container):
    """Create test client; entering it runs the lifespan (store connect, sweeper start)"""
    with TestClient(create_app(container=container)) as client:
        yield client


def _join(client, name):
    return client.post("/participants", json={"name": name})


def _post(client, user, text, to="Todos", message_type="message"):
    return client.post(
        "/messages",
        json={"to": to, "text": text, "type": message_type},
        headers={"user": user},
    )


def _assert_error(response, status, error_code):
    assert response.status_code == status
    body = response.json()
    assert body["type"] == "error"
    assert body["error_code"] == error_code
    assert body["error_message"]


class TestParticipantEndpoints:

    def test_join_and_list(self, test_client, clock):
        response = _join(test_client, "Ana")

        assert response.status_code == 201
        assert response.json() == {"name": "Ana", "lastStatus": clock.now}

        listed = test_client.get("/participants")
        assert listed.status_code == 200
        assert [p["name"] for p in listed.json()] == ["Ana"]

    def test_duplicate_join_conflict(self, test_client):
        _join(test_client, "Ana")

        _assert_error(_join(test_client, "Ana"), 409, "participant_conflict")

    @pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "   "}, {"name": 5}, ["Ana"]])
    def test_invalid_join_body(self, test_client, body):
        _assert_error(test_client.post("/participants", json=body), 422, "validation_error")

    def test_status_refreshes_participant(self, test_client, clock):
        _join(test_client, "Ana")
        clock.advance(3_000)

        response = test_client.post("/status", headers={"user": "Ana"})

        assert response.status_code == 200
        assert test_client.get("/participants").json()[0]["lastStatus"] == clock.now

    def test_status_for_unknown_participant(self, test_client):
        _assert_error(test_client.post("/status", headers={"user": "Ghost"}), 404, "not_found")

    def test_status_without_user_header(self, test_client):
        _assert_error(test_client.post("/status"), 404, "not_found")


class TestMessageEndpoints:

    def test_post_and_list(self, test_client):
        _join(test_client, "Ana")

        response = _post(test_client, "Ana", "hi")

        assert response.status_code == 201
        posted = response.json()
        assert posted["from"] == "Ana"
        assert posted["type"] == "message"
        assert posted["id"]

    def test_post_from_unknown_sender(self, test_client):
        _assert_error(_post(test_client, "Ghost", "hi"), 422, "unknown_sender")

    def test_post_status_type_rejected(self, test_client):
        _join(test_client, "Ana")

        _assert_error(_post(test_client, "Ana", "hi", message_type="status"), 422, "validation_error")

    def test_list_with_limit(self, test_client):
        _join(test_client, "Ana")
        for text in ("a", "b", "c"):
            _post(test_client, "Ana", text)

        response = test_client.get("/messages", params={"limit": 2})

        assert [m["text"] for m in response.json()] == ["b", "c"]

    @pytest.mark.parametrize("limit", ["0", "-3", "many", "1" + "0" * 30])
    def test_list_with_bad_limit(self, test_client, limit):
        _assert_error(test_client.get("/messages", params={"limit": limit}), 422, "validation_error")

    def test_private_messages_hidden_from_others(self, test_client):
        for name in ("Ana", "Bia", "Caio"):
            _join(test_client, name)
        _post(test_client, "Ana", "segredo", to="Bia", message_type="private_message")

        caio_view = test_client.get("/messages", headers={"user": "Caio"}).json()
        bia_view = test_client.get("/messages", headers={"user": "Bia"}).json()

        assert "segredo" not in [m["text"] for m in caio_view]
        assert "segredo" in [m["text"] for m in bia_view]

    def test_edit_own_message(self, test_client):
        _join(test_client, "Ana")
        message_id = _post(test_client, "Ana", "oi").json()["id"]

        response = test_client.put(
            f"/messages/{message_id}",
            json={"to": "Todos", "text": "olá", "type": "message"},
            headers={"user": "Ana"},
        )

        assert response.status_code == 200
        assert response.json()["text"] == "olá"

    def test_edit_by_someone_else_unauthorized(self, test_client):
        _join(test_client, "Ana")
        _join(test_client, "Bia")
        message_id = _post(test_client, "Ana", "oi").json()["id"]

        response = test_client.put(
            f"/messages/{message_id}",
            json={"to": "Todos", "text": "hacked", "type": "message"},
            headers={"user": "Bia"},
        )

        _assert_error(response, 401, "forbidden")
        texts = [m["text"] for m in test_client.get("/messages").json()]
        assert "oi" in texts and "hacked" not in texts

    def test_edit_missing_message(self, test_client):
        response = test_client.put(
            "/messages/does-not-exist",
            json={"to": "Todos", "text": "x", "type": "message"},
            headers={"user": "Ana"},
        )
        _assert_error(response, 404, "not_found")

    def test_delete_own_message(self, test_client):
        _join(test_client, "Ana")
        message_id = _post(test_client, "Ana", "oi").json()["id"]

        response = test_client.delete(f"/messages/{message_id}", headers={"user": "Ana"})

        assert response.status_code == 200
        assert response.json() == {"id": message_id, "deleted": True}
        assert message_id not in [m["id"] for m in test_client.get("/messages").json()]

    def test_delete_by_someone_else_unauthorized(self, test_client):
        _join(test_client, "Ana")
        message_id = _post(test_client, "Ana", "oi").json()["id"]

        _assert_error(test_client.delete(f"/messages/{message_id}", headers={"user": "Bia"}), 401, "forbidden")


class TestPresenceScenario:

    def test_join_post_then_evicted_after_silence(self, test_client, container, clock):
        assert _join(test_client, "Ana").status_code == 201
        assert _join(test_client, "Ana").status_code == 409
        assert _post(test_client, "Ana", "hi").status_code == 201

        history = test_client.get("/messages").json()
        assert [(m["text"], m["type"]) for m in history] == [
            ("entra na sala...", "status"),
            ("hi", "message"),
        ]

        clock.advance(11_000)
        report = asyncio.run(container.lifecycle.sweep())

        assert report.evicted == ["Ana"]
        assert test_client.get("/participants").json() == []
        last = test_client.get("/messages").json()[-1]
        assert last["from"] == "Ana"
        assert last["to"] == "Todos"
        assert last["text"] == "sai da sala..."
        assert last["type"] == "status"

        # Evicted participants must join again
        _assert_error(test_client.post("/status", headers={"user": "Ana"}), 404, "not_found")
        assert _join(test_client, "Ana").status_code == 201

    def test_heartbeat_keeps_participant(self, test_client, container, clock):
        _join(test_client, "Ana")
        for _ in range(3):
            clock.advance(5_000)
            test_client.post("/status", headers={"user": "Ana"})
            asyncio.run(container.lifecycle.sweep())

        assert [p["name"] for p in test_client.get("/participants").json()] == ["Ana"]


class TestOperationalEndpoints:

    def test_store_failure_is_opaque(self, test_client, container):
        container.store.list_participants = AsyncMock(side_effect=StoreError("password=hunter2"))

        response = test_client.get("/participants")

        _assert_error(response, 500, "store_unavailable")
        assert "hunter2" not in response.text

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["store"] == "memory"
        assert body["sweeper"]["running"] is True
        assert body["sweeper"]["failures"] == 0

    def test_sweeper_stopped_on_shutdown(self, memory_settings, clock):
        container = Container(memory_settings, clock=clock)

        with TestClient(create_app(container=container)):
            assert container.sweeper.is_running

        assert not container.sweeper.is_running
