"""Shared fixtures: a reference profile, vacancy factory, fake channels and HTTP responses."""
from __future__ import annotations

import itertools
import os

# keep test runs from writing daily log files
os.environ.setdefault("CAREERPILOT_LOG_FILE", "0")

from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from careerpilot.config import Settings
from careerpilot.history import OfferLog, OutcomeLog
from careerpilot.matcher import MatchEngine
from careerpilot.models import Profile, RemotePolicy, Seniority, Vacancy
from careerpilot.notify import NotificationDispatcher
from careerpilot.notify.base import NotificationChannel
from careerpilot.pipeline import Orchestrator
from careerpilot.store import VacancyStore


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Retries run instantly."""
    monkeypatch.setattr("careerpilot.retry.time.sleep", lambda seconds: None)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def profile() -> Profile:
    return Profile(
        name="Test User",
        skills={"python": 1.0, "django": 0.8, "postgresql": 0.6, "aws": 0.5, "docker": 0.5},
        salary_target=140_000,
        salary_floor=115_000,
        seniority=Seniority.SENIOR,
        remote_policy=RemotePolicy.REMOTE,
        preferred_stack=frozenset({"python", "django", "aws"}),
        learning_goals=frozenset({"kubernetes"}),
    )


@pytest.fixture
def engine(profile, settings) -> MatchEngine:
    return MatchEngine(profile, settings)


@pytest.fixture
def make_vacancy():
    """Factory for vacancies with unique URLs; keyword overrides win."""
    counter = itertools.count(1)

    def _make(**overrides) -> Vacancy:
        n = next(counter)
        fields = {
            "platform": "test",
            "url": f"https://jobs.test/{n}",
            "title": f"Engineer {n}",
            "company": "Acme",
            "required_skills": frozenset({"python"}),
            "seniority": Seniority.SENIOR,
            "remote_policy": RemotePolicy.REMOTE,
            "posted_at": datetime(2024, 3, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        fields["required_skills"] = frozenset(fields["required_skills"])
        return Vacancy(**fields)

    return _make


class RecordingChannel(NotificationChannel):
    """In-memory channel: records every chunk, optionally failing at one index."""

    transport_errors = (ConnectionError,)

    def __init__(self, name: str = "recording", max_message_size: int | None = None, fail_at: int | None = None):
        self.name = name
        self.max_message_size = max_message_size
        self.fail_at = fail_at
        self.sent: list[str] = []
        self.subjects: list[str] = []

    def match_units(self, ranked):
        return "MATCHES\n", [f"{v.title} @ {v.company}\n" for v in ranked]

    def snapshot_units(self, snapshot):
        return f"SNAPSHOT {snapshot.platform}\n", [f"{skill}: {count}\n" for skill, count in snapshot.top_skills()]

    def send_chunk(self, text, *, subject="", cancel=None):
        if self.fail_at is not None and len(self.sent) == self.fail_at:
            raise ConnectionError(f"{self.name} unreachable")
        self.sent.append(text)
        self.subjects.append(subject)

    def test_connection(self):
        return self.fail_at is None


@pytest.fixture
def make_channel():
    return RecordingChannel


@pytest.fixture
def make_response():
    """Fake ``requests`` response carrying a JSON payload."""

    def _make(payload, status: int = 200):
        response = mock.Mock()
        response.status_code = status
        response.json.return_value = payload
        if status >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
        else:
            response.raise_for_status.return_value = None
        return response

    return _make


@pytest.fixture
def make_orchestrator(tmp_path, profile, settings):
    def _make(scrapers, channels=()) -> Orchestrator:
        return Orchestrator(
            engine=MatchEngine(profile, settings),
            store=VacancyStore(tmp_path),
            scrapers=list(scrapers),
            dispatcher=NotificationDispatcher(list(channels)),
            outcomes=OutcomeLog(tmp_path),
            offers=OfferLog(tmp_path),
            settings=settings,
        )

    return _make
