"""
Integration tests for the full command flow.

A scripted interpreter feeds intents to a real orchestrator backed by SQLite
and an in-process calendar, so each test exercises the whole
schedule -> list -> reschedule -> cancel lifecycle end to end.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from agendabot.calendar.google_calendar import GoogleCalendarBackend
from agendabot.domain.appointment import AppointmentStatus
from agendabot.intents.models import Intent
from agendabot.orchestrator import CommandOrchestrator
from agendabot.store.memory_store import InMemoryAppointmentStore
from agendabot.store.base import DateRangeQuery


DENTIST_START = datetime(2025, 1, 7, 13, 0, tzinfo=timezone.utc)


def intent(payload: dict) -> Intent:
    return Intent.from_dict(payload)


def schedule(title: str, start: datetime, hours: int = 1) -> Intent:
    return intent({
        "type": "SCHEDULE",
        "confidence": 0.95,
        "data": {
            "title": title,
            "start": start.isoformat(),
            "end": (start + timedelta(hours=hours)).isoformat(),
        },
    })


class TestAppointmentLifecycle:

    @pytest.mark.asyncio
    async def test_schedule_list_reschedule_cancel(
        self, wired_orchestrator, scripted_interpreter, in_process_calendar, sqlite_store
    ):
        scripted_interpreter.queue.append(schedule("Dentista", DENTIST_START))
        created = await wired_orchestrator.execute("ana", "dentista terça 10h")

        assert created.success is True
        assert created.message == 'Agendamento criado com sucesso: "Dentista" em 07/01/2025 10:00.'
        appt_id = created.data["appointment_id"]
        stored = await sqlite_store.find_by_id(appt_id)
        assert stored.external_refs.google_calendar_event_id == created.data["external_id"]
        assert created.data["external_id"] in in_process_calendar.events

        scripted_interpreter.queue.append(intent({"type": "LIST", "confidence": 0.9}))
        listed = await wired_orchestrator.execute("ana", "o que tenho esta semana")

        assert listed.success is True
        assert listed.message == "Você tem 1 compromisso(s):\n- Dentista em 07/01/2025 10:00"

        new_start = DENTIST_START + timedelta(days=1)
        scripted_interpreter.queue.append(intent({
            "type": "RESCHEDULE",
            "confidence": 0.85,
            "data": {
                "appointmentId": appt_id,
                "newStart": new_start.isoformat(),
                "newEnd": (new_start + timedelta(hours=1)).isoformat(),
            },
        }))
        moved = await wired_orchestrator.execute("ana", "passa o dentista para quarta")

        assert moved.success is True
        assert moved.message == "Reagendado para 08/01/2025 10:00."
        stored = await sqlite_store.find_by_id(appt_id)
        assert stored.date_time.start == new_start
        assert in_process_calendar.events[created.data["external_id"]][0] == new_start

        scripted_interpreter.queue.append(intent({
            "type": "CANCEL", "confidence": 0.9, "data": {"appointmentId": appt_id},
        }))
        cancelled = await wired_orchestrator.execute("ana", "cancela o dentista")

        assert cancelled.success is True
        stored = await sqlite_store.find_by_id(appt_id)
        assert stored.status == AppointmentStatus.CANCELLED
        assert in_process_calendar.events == {}

    @pytest.mark.asyncio
    async def test_overlapping_schedule_is_a_conflict(
        self, wired_orchestrator, scripted_interpreter, sqlite_store, now
    ):
        scripted_interpreter.queue.append(schedule("Dentista", DENTIST_START))
        scripted_interpreter.queue.append(
            schedule("Reunião", DENTIST_START + timedelta(minutes=30))
        )

        first = await wired_orchestrator.execute("ana", "dentista terça 10h")
        second = await wired_orchestrator.execute("ana", "reunião terça 10h30")

        assert first.success is True
        assert second.success is False
        assert "Conflito" in second.message

        saved = await sqlite_store.find_by_date_range(
            DateRangeQuery(start=now, end=now + timedelta(days=7), user_id="ana")
        )
        assert [a.title for a in saved] == ["Dentista"]

    @pytest.mark.asyncio
    async def test_users_are_isolated(
        self, wired_orchestrator, scripted_interpreter, sqlite_store
    ):
        scripted_interpreter.queue.append(schedule("Dentista", DENTIST_START))
        created = await wired_orchestrator.execute("ana", "dentista terça 10h")
        appt_id = created.data["appointment_id"]

        scripted_interpreter.queue.append(intent({
            "type": "CANCEL", "confidence": 0.9, "data": {"appointmentId": appt_id},
        }))
        scripted_interpreter.queue.append(intent({"type": "LIST", "confidence": 0.9}))

        cancel = await wired_orchestrator.execute("bruno", "cancela o dentista")
        listing = await wired_orchestrator.execute("bruno", "minha agenda")

        assert cancel.success is False
        assert cancel.message == "Agendamento não encontrado."
        assert listing.message == "Nenhum compromisso neste período."
        stored = await sqlite_store.find_by_id(appt_id)
        assert stored.status == AppointmentStatus.SCHEDULED


class TestRepeatedCancelAgainstGoogleBackend:

    @pytest.mark.asyncio
    async def test_second_cancel_succeeds_without_second_delete(self, scripted_interpreter, now):
        calendar = GoogleCalendarBackend(client_id="id", client_secret="secret", refresh_token="r")
        calendar._make_request = AsyncMock(side_effect=[
            {"success": True, "data": {"calendars": {"primary": {"busy": []}}}},
            {"success": True, "data": {"id": "evt-1"}},
            {"success": True},
            {"success": False, "error": "Resource already deleted", "status": 410},
        ])
        orchestrator = CommandOrchestrator(
            scripted_interpreter, calendar, InMemoryAppointmentStore(), clock=lambda: now
        )

        scripted_interpreter.queue.append(schedule("Dentista", DENTIST_START))
        created = await orchestrator.execute("ana", "dentista terça 10h")
        appt_id = created.data["appointment_id"]

        cancel = {"type": "CANCEL", "confidence": 0.9, "data": {"appointmentId": appt_id}}
        scripted_interpreter.queue.extend([intent(cancel), intent(cancel)])
        first = await orchestrator.execute("ana", "cancela o dentista")
        second = await orchestrator.execute("ana", "cancela o dentista")

        assert first.success is True
        assert second.success is True
        assert second.message == "Agendamento cancelado."
        deletes = [c for c in calendar._make_request.await_args_list if c.args[0] == "DELETE"]
        assert len(deletes) == 1
