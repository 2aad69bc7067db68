"""Mock scraper for testing and fallback when no API is configured."""
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

from careerpilot.log import get_logger
from careerpilot.models import RemotePolicy, Seniority, Vacancy
from careerpilot.sources.base import Scraper

log = get_logger(__name__)

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)

# (title, company, skills, min, max, seniority, remote, posted day offset)
SAMPLE_LISTINGS: list[tuple] = [
    ("Senior Python Engineer", "TechCorp", {"python", "django", "postgresql", "aws"},
     130_000, 160_000, Seniority.SENIOR, RemotePolicy.REMOTE, 5),
    ("Backend Developer", "CloudScale SaaS", {"python", "fastapi", "docker", "kubernetes"},
     100_000, 120_000, Seniority.MIDDLE, RemotePolicy.HYBRID, 4),
    ("Data Engineer", "Insight Analytics", {"python", "spark", "sql", "kafka"},
     None, None, Seniority.SENIOR, RemotePolicy.REMOTE_FRIENDLY, 3),
    ("Lead Platform Engineer", "Enterprise Platform Inc", {"go", "kubernetes", "terraform", "aws", "system design"},
     150_000, 190_000, Seniority.LEAD, RemotePolicy.ONSITE, 2),
    ("Junior Web Developer", "Startly", {"javascript", "react", "node.js"},
     60_000, 75_000, Seniority.JUNIOR, RemotePolicy.REMOTE, 1),
]


class MockScraper(Scraper):
    """Deterministic listings; one page holds every sample."""

    platform = "mock"

    def __init__(self, listings: list[tuple] | None = None) -> None:
        self.listings = SAMPLE_LISTINGS if listings is None else listings

    def _build(self, index: int, row: tuple) -> Vacancy:
        title, company, skills, lo, hi, level, remote, day = row
        return Vacancy(
            platform=self.platform,
            url=f"https://example.com/job/{index + 1}",
            title=title,
            company=company,
            description=f"{title} at {company}. Stack: {', '.join(sorted(skills))}.",
            required_skills=frozenset(skills),
            salary_min=lo,
            salary_max=hi,
            seniority=level,
            remote_policy=remote,
            posted_at=_EPOCH + timedelta(days=day),
        )

    def scrape(
        self,
        keywords: list[str],
        max_pages: int = 1,
        cancel: threading.Event | None = None,
    ) -> list[Vacancy]:
        if cancel is not None and cancel.is_set():
            return []
        log.info("MockScraper generating %d sample vacancies", len(self.listings))
        return [self._build(i, row) for i, row in enumerate(self.listings)]

    def scrape_detail(self, url: str) -> Vacancy | None:
        for i, row in enumerate(self.listings):
            if url == f"https://example.com/job/{i + 1}":
                return self._build(i, row)
        return None
