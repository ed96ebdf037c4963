"""
Tests for the HTTP API.
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from clinic_booking_agent.api import build_runtime, create_app
from clinic_booking_agent.config import Settings
from clinic_booking_agent.services.booking import BookingService
from clinic_booking_agent.services.memory import InMemorySessionStore
from clinic_booking_agent.services.nlu import RetryPolicy
from clinic_booking_agent.services.persistence import InMemoryAppointmentRepository, SQLiteAppointmentRepository

from support import fixed_clock


@pytest.fixture
def client(settings, service):
    with TestClient(create_app(settings, service=service)) as test_client:
        yield test_client


def _chat(client, message, session_id="s1", **extra):
    return client.post("/chat/appointment", json={"message": message, "session_id": session_id, **extra})


class TestHealth:
    def test_health_endpoints(self, client):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert client.get("/health/ready").json() == {"status": "ready"}
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_security_headers(self, client):
        response = client.get("/health/live")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"


class TestChat:
    def test_first_message_shows_menu(self, client):
        response = _chat(client, "hello")

        assert response.status_code == 200
        body = response.json()
        assert "Book an appointment" in body["message"]
        assert body["conversation_context"]["phase"] == "GREETING"
        assert body["conversation_context"]["session_id"] == "s1"
        assert body["ready_to_book"] is False
        assert body["suggested_actions"] == ["Book an appointment", "Check availability"]

    def test_booking_request_asks_for_date(self, client, parser):
        parser.script("I want to book an appointment", intent="book_appointment")

        body = _chat(client, "I want to book an appointment").json()

        assert body["conversation_context"]["phase"] == "ASKING_DATE"
        assert body["suggested_actions"] == ["Today", "Tomorrow", "Next week"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"message": "   ", "session_id": "s1"},
            {"message": "x" * 1001, "session_id": "s1"},
            {"message": "hello", "session_id": ""},
            {"session_id": "s1"},
        ],
    )
    def test_invalid_requests_are_rejected(self, client, payload):
        assert client.post("/chat/appointment", json=payload).status_code == 422

    def test_history_and_clear(self, client):
        _chat(client, "hello")

        history = client.get("/chat/history/s1")
        assert history.status_code == 200
        assert [m["role"] for m in history.json()["messages"]] == ["user", "assistant"]

        cleared = client.delete("/chat/clear/s1")
        assert cleared.json() == {"status": "cleared", "session_id": "s1"}
        assert client.get("/chat/history/s1").status_code == 404

    def test_unknown_session_history_is_404(self, client):
        assert client.get("/chat/history/missing").status_code == 404


class TestSlots:
    def test_slots_for_a_date(self, client):
        response = client.get("/chat/slots", params={"date": "2025-08-07"})

        assert response.status_code == 200
        assert len(response.json()["slots"]) == 8

    def test_slots_with_preference(self, client):
        response = client.get("/chat/slots", params={"date": "2025-08-07", "preference": "evening"})

        assert [s["time"] for s in response.json()["slots"]] == ["07:00 PM", "07:30 PM"]

    @pytest.mark.parametrize(
        "params", [{"date": "07/08/2025"}, {"date": "2025-08-07", "preference": "lunchtime"}]
    )
    def test_bad_slot_queries(self, client, params):
        assert client.get("/chat/slots", params=params).status_code == 400

    def test_slots_without_settings_is_503(self, settings, parser):
        service = BookingService(
            InMemoryAppointmentRepository(None),
            InMemorySessionStore(),
            parser,
            retry_policy=RetryPolicy.no_retry(),
            settings=settings,
            clock=fixed_clock,
        )
        with TestClient(create_app(settings, service=service)) as client:
            response = client.get("/chat/slots", params={"date": "2025-08-07"})

        assert response.status_code == 503
        assert "Appointment Settings" in response.json()["detail"]


def _runtime_settings(tmp_path, appointment_settings):
    settings_file = tmp_path / "appointment_settings.json"
    settings_file.write_text(appointment_settings.model_dump_json(), encoding="utf-8")
    return Settings(
        _env_file=None,
        clinic_db_path=str(tmp_path / "clinic.db"),
        appointment_settings_path=str(settings_file),
        state_db_path="",
        event_log_path=None,
        groq_api_key=None,
        gemini_api_key=None,
        openai_api_key=None,
        whatsapp_access_token=None,
        smtp_host="",
    )


class TestRuntime:
    @pytest.mark.asyncio
    async def test_build_runtime_seeds_settings(self, tmp_path, appointment_settings):
        runtime = await build_runtime(_runtime_settings(tmp_path, appointment_settings))

        assert isinstance(runtime.service.repository, SQLiteAppointmentRepository)
        assert isinstance(runtime.service.session_store, InMemorySessionStore)
        assert await runtime.service.repository.get_appointment_settings() == appointment_settings
        assert runtime.service.retry_policy.max_attempts == 1
        assert runtime.notifications.channels == []

    @pytest.mark.asyncio
    async def test_commit_clock_follows_runtime_timezone(self, tmp_path, appointment_settings):
        settings = _runtime_settings(tmp_path, appointment_settings)
        settings.timezone = "America/New_York"

        runtime = await build_runtime(settings)

        assert runtime.service.commit_gateway.clock().tzinfo.zone == "America/New_York"

    def test_app_without_language_model_still_answers(self, tmp_path, appointment_settings):
        settings = _runtime_settings(tmp_path, appointment_settings)
        target = (date.today() + timedelta(days=2)).isoformat()

        with TestClient(create_app(settings)) as client:
            greeting = _chat(client, "hello")
            slots = client.get("/chat/slots", params={"date": target})

        assert greeting.status_code == 200
        assert "Book an appointment" in greeting.json()["message"]
        assert len(slots.json()["slots"]) == 8
