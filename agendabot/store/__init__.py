"""Appointment stores.

Components:
    base.py: AppointmentStore contract and DateRangeQuery
    sqlite_store.py: SQLite-backed store
    memory_store.py: in-memory store
"""

from agendabot.store.base import AppointmentStore, DateRangeQuery

__all__ = ["AppointmentStore", "DateRangeQuery"]
