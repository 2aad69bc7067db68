"""Scraper contract and the text normalization shared by every platform."""
from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterable

from careerpilot.models import RemotePolicy, Seniority, Vacancy

# Recognized skill vocabulary: canonical name → phrases that mean it.
SKILL_SYNONYMS: dict[str, tuple[str, ...]] = {
    "python": ("python",),
    "django": ("django",),
    "flask": ("flask",),
    "fastapi": ("fastapi",),
    "java": ("java",),
    "kotlin": ("kotlin",),
    "go": ("golang",),
    "rust": ("rust",),
    "c#": ("c#", "csharp", ".net", "dotnet", "asp.net"),
    "c++": ("c++", "cpp"),
    "javascript": ("javascript", "js"),
    "typescript": ("typescript",),
    "react": ("react", "react.js", "reactjs"),
    "node.js": ("node.js", "nodejs", "node"),
    "sql": ("sql",),
    "postgresql": ("postgresql", "postgres"),
    "mysql": ("mysql",),
    "mongodb": ("mongodb", "mongo"),
    "redis": ("redis",),
    "kafka": ("kafka",),
    "aws": ("aws", "amazon web services"),
    "azure": ("azure",),
    "gcp": ("gcp", "google cloud"),
    "docker": ("docker",),
    "kubernetes": ("kubernetes", "k8s"),
    "terraform": ("terraform",),
    "linux": ("linux",),
    "git": ("git",),
    "ci/cd": ("ci/cd", "cicd", "continuous integration"),
    "machine learning": ("machine learning", "ml"),
    "pandas": ("pandas",),
    "spark": ("spark", "pyspark"),
    "graphql": ("graphql",),
    "microservices": ("microservices", "microservice"),
    "system design": ("system design", "distributed systems"),
}

_ALIASES: dict[str, str] = {
    phrase: canonical for canonical, phrases in SKILL_SYNONYMS.items() for phrase in phrases
}

# Checked most senior first so "Senior Staff" resolves to the higher level.
SENIORITY_PATTERNS: list[tuple[Seniority, tuple[str, ...]]] = [
    (Seniority.PRINCIPAL, ("principal", "distinguished")),
    (Seniority.ARCHITECT, ("architect",)),
    (Seniority.LEAD, ("lead", "staff", "team lead", "tech lead", "head of")),
    (Seniority.SENIOR, ("senior", "sr")),
    (Seniority.MIDDLE, ("middle", "mid-level", "mid level", "intermediate")),
    (Seniority.JUNIOR, ("junior", "jr", "entry level", "entry-level", "graduate")),
    (Seniority.INTERN, ("intern", "internship", "trainee")),
]

REMOTE_PATTERNS: list[tuple[RemotePolicy, tuple[str, ...]]] = [
    (RemotePolicy.HYBRID, ("hybrid",)),
    (RemotePolicy.REMOTE_FRIENDLY, ("remote-friendly", "remote friendly", "remote possible", "partially remote")),
    (RemotePolicy.REMOTE, ("fully remote", "100% remote", "remote", "work from home", "anywhere")),
    (RemotePolicy.ONSITE, ("on-site", "onsite", "in office", "in-office", "office based")),
]


def normalize_skill(name: str) -> str:
    """Lowercase, collapse whitespace, map known synonyms to one name."""
    key = re.sub(r"\s+", " ", (name or "").strip().lower())
    return _ALIASES.get(key, key)


def _contains(text: str, phrase: str) -> bool:
    # word boundaries that also work for names like "c#" and ".net"
    return re.search(rf"(?<![\w+#.]){re.escape(phrase)}(?![\w+#])", text) is not None


def extract_skills(*texts: str, tags: Iterable[str] = ()) -> frozenset[str]:
    """Recognized skills mentioned in free text or explicit tags.

    Tags outside the skill vocabulary ("senior", "remote", ...) are dropped.
    """
    found = {s for s in (normalize_skill(t) for t in tags if t and t.strip()) if s in SKILL_SYNONYMS}
    blob = " ".join(t.lower() for t in texts if t)
    for phrase, canonical in _ALIASES.items():
        if canonical not in found and _contains(blob, phrase):
            found.add(canonical)
    return frozenset(found)


def detect_seniority(*texts: str) -> Seniority:
    blob = " ".join(t.lower() for t in texts if t)
    for level, phrases in SENIORITY_PATTERNS:
        if any(_contains(blob, p) for p in phrases):
            return level
    return Seniority.UNKNOWN


def detect_remote_policy(*texts: str) -> RemotePolicy:
    blob = " ".join(t.lower() for t in texts if t)
    for policy, phrases in REMOTE_PATTERNS:
        if any(_contains(blob, p) for p in phrases):
            return policy
    return RemotePolicy.UNKNOWN


_SALARY_NUMBER = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(k)?\b", re.IGNORECASE)
_CURRENCY_SIGNS = {"$": "USD", "€": "EUR", "£": "GBP"}


def parse_salary_text(text: str | None) -> tuple[float | None, float | None, str]:
    """Free-text salary ("$90k - $120k", "EUR 60,000") → (min, max, currency).

    Values under 1000 without a "k" (hourly rates, "5 years") are ignored.
    """
    if not text:
        return None, None, "USD"
    currency = "USD"
    for sign, code in _CURRENCY_SIGNS.items():
        if sign in text:
            currency = code
            break
    else:
        m = re.search(r"\b(USD|EUR|GBP|CAD|AUD|CHF|INR)\b", text, re.IGNORECASE)
        if m:
            currency = m.group(1).upper()

    values: list[float] = []
    for number, k in _SALARY_NUMBER.findall(text):
        value = float(number.replace(",", ""))
        if k:
            value *= 1000
        if value >= 1000:
            values.append(value)
    if not values:
        return None, None, currency
    return min(values), max(values), currency


def parse_posted(value: str | None) -> datetime | None:
    """ISO-8601 timestamp → aware datetime (naive values are taken as UTC)."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def make_vacancy(
    platform: str,
    url: str,
    title: str,
    company: str,
    description: str = "",
    tags: Iterable[str] = (),
    location: str = "",
    salary_min: float | None = None,
    salary_max: float | None = None,
    currency: str = "USD",
    posted_at: str | None = None,
    remote_hint: str = "",
) -> Vacancy:
    """Build a normalized Vacancy from raw listing fields."""
    tags = list(tags)
    return Vacancy(
        platform=platform,
        url=url,
        title=title.strip(),
        company=company.strip(),
        description=description,
        required_skills=extract_skills(title, description, tags=tags),
        salary_min=float(salary_min) if salary_min else None,
        salary_max=float(salary_max) if salary_max else None,
        currency=(currency or "USD").upper(),
        seniority=detect_seniority(title),
        remote_policy=detect_remote_policy(remote_hint, location, title, description),
        posted_at=parse_posted(posted_at),
    )


class Scraper(ABC):
    """One job platform. Implementations only return Vacancy records."""

    platform: str = "unknown"

    @abstractmethod
    def scrape(
        self,
        keywords: list[str],
        max_pages: int = 1,
        cancel: threading.Event | None = None,
    ) -> list[Vacancy]:
        """Search results, page by page; stops before the next page once cancelled."""

    @abstractmethod
    def scrape_detail(self, url: str) -> Vacancy | None:
        """Full record for one listing URL, or None when it is gone."""
