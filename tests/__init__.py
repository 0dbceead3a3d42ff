"""agendabot Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - domain/: Appointment entity
  - intents/: intent parsing, Claude interpreter, Whisper transcriber
  - orchestration/: CommandOrchestrator
  - calendar/: Google Calendar backend
  - store/: SQLite and in-memory stores
  - transport/: Telegram bot
  - wiring/: config, container, CLI, logging
- integration/: webhook API and end-to-end command flow on SQLite

Running tests:
    # All tests
    pytest

    # Specific area
    pytest tests/unit/orchestration/
"""
