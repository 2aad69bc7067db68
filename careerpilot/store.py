"""Durable vacancy store (CSV) with file locking and score history."""
from __future__ import annotations

import csv
import fcntl
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable

from careerpilot.config import DATA_DIR
from careerpilot.errors import ValidationError
from careerpilot.log import get_logger
from careerpilot.models import MatchScore, RemotePolicy, Seniority, Vacancy, utcnow

log = get_logger(__name__)

VACANCY_HEADERS: list[str] = [
    "platform", "url", "title", "company", "description", "required_skills",
    "salary_min", "salary_max", "currency", "seniority", "remote_policy",
    "posted_at", "scraped_at",
]
SCORE_HEADERS: list[str] = [
    "platform", "url", "scored_at", "profile_version", "overall", "skill_score",
    "salary_score", "seniority_score", "remote_score", "action", "confidence",
]


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def iso(dt: datetime | None) -> str:
    return dt.isoformat() if dt else ""


def parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def num(value: float | None) -> str:
    return "" if value is None else repr(float(value))


def _float_or_none(value: str) -> float | None:
    return float(value) if value not in ("", None) else None


class CsvTable:
    """Append-only CSV file; every append and read holds the file lock."""

    def __init__(self, path: Path, headers: list[str]) -> None:
        self.path = path
        self.headers = headers

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.writer(f).writerow(self.headers)
                _unlock(f)
            log.info("Created %s", self.path.name)

    def append(self, row: dict[str, str]) -> None:
        self.ensure()
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            _lock(f)
            csv.DictWriter(f, fieldnames=self.headers).writerow(row)
            f.flush()
            _unlock(f)

    def rows(self) -> list[dict[str, str]]:
        self.ensure()
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return rows


def vacancy_to_row(v: Vacancy) -> dict[str, str]:
    return {
        "platform": v.platform,
        "url": v.url,
        "title": v.title,
        "company": v.company,
        "description": v.description,
        "required_skills": ";".join(sorted(v.required_skills)),
        "salary_min": num(v.salary_min),
        "salary_max": num(v.salary_max),
        "currency": v.currency,
        "seniority": v.seniority.name,
        "remote_policy": v.remote_policy.value,
        "posted_at": iso(v.posted_at),
        "scraped_at": iso(v.scraped_at),
    }


def row_to_vacancy(row: dict[str, str]) -> Vacancy:
    skills = row.get("required_skills") or ""
    return Vacancy(
        platform=row["platform"],
        url=row["url"],
        title=row.get("title", ""),
        company=row.get("company", ""),
        description=row.get("description", ""),
        required_skills=frozenset(s for s in skills.split(";") if s),
        salary_min=_float_or_none(row.get("salary_min", "")),
        salary_max=_float_or_none(row.get("salary_max", "")),
        currency=row.get("currency") or "USD",
        seniority=Seniority[row.get("seniority") or "UNKNOWN"],
        remote_policy=RemotePolicy(row.get("remote_policy") or "unknown"),
        posted_at=parse_dt(row.get("posted_at")),
        scraped_at=parse_dt(row.get("scraped_at")) or utcnow(),
    )


class VacancyStore:
    """Vacancies keyed by (platform, url); create, append and query only."""

    def __init__(self, data_dir: Path | None = None) -> None:
        data_dir = data_dir or DATA_DIR
        self._vacancies = CsvTable(data_dir / "vacancies.csv", VACANCY_HEADERS)
        self._scores = CsvTable(data_dir / "scores.csv", SCORE_HEADERS)
        self._lock = threading.Lock()
        self._keys: set[tuple[str, str]] | None = None

    def _known_keys(self) -> set[tuple[str, str]]:
        if self._keys is None:
            self._keys = {(r["platform"], r["url"]) for r in self._vacancies.rows()}
        return self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._known_keys())

    def __contains__(self, key: tuple[str, str]) -> bool:
        with self._lock:
            return key in self._known_keys()

    def add(self, vacancy: Vacancy) -> Vacancy:
        """Append one vacancy; a repeated (platform, url) raises ValidationError."""
        if not vacancy.platform or not vacancy.url:
            raise ValidationError(f"Vacancy needs platform and url: {vacancy.title!r}")
        if (
            vacancy.salary_min is not None
            and vacancy.salary_max is not None
            and vacancy.salary_min > vacancy.salary_max
        ):
            raise ValidationError(f"salary_min exceeds salary_max for {vacancy.url}")
        with self._lock:
            keys = self._known_keys()
            if vacancy.key in keys:
                raise ValidationError(f"Duplicate vacancy {vacancy.platform}:{vacancy.url}")
            self._vacancies.append(vacancy_to_row(vacancy))
            keys.add(vacancy.key)
        log.debug("Stored: %s", vacancy)
        return vacancy

    def add_many(self, vacancies: Iterable[Vacancy]) -> tuple[list[Vacancy], int, int]:
        """Store each vacancy; returns (added, skipped, failed).

        Duplicates are skipped, other invalid records fail; neither aborts the batch.
        """
        added: list[Vacancy] = []
        skipped = failed = 0
        for v in vacancies:
            try:
                added.append(self.add(v))
            except ValidationError as exc:
                if v.key in self:
                    skipped += 1
                    log.debug("Skipped: %s", exc)
                else:
                    failed += 1
                    log.warning("Rejected vacancy: %s", exc)
        return added, skipped, failed

    def query(
        self,
        platform: str | None = None,
        since: datetime | None = None,
        min_seniority: Seniority | None = None,
    ) -> list[Vacancy]:
        """Vacancies in insertion order, filtered by platform, scrape time and level."""
        result: list[Vacancy] = []
        for row in self._vacancies.rows():
            if platform and row["platform"] != platform:
                continue
            v = row_to_vacancy(row)
            if since and v.scraped_at < since:
                continue
            if min_seniority is not None and v.seniority < min_seniority:
                continue
            result.append(v)
        return result

    def attach_score(self, vacancy: Vacancy, score: MatchScore) -> Vacancy:
        """Record the score in the history log and return the scored copy."""
        if not 0 <= score.overall <= 100:
            raise ValidationError(f"Score out of range for {vacancy.url}: {score.overall}")
        self._scores.append({
            "platform": vacancy.platform,
            "url": vacancy.url,
            "scored_at": iso(utcnow()),
            "profile_version": str(score.profile_version),
            "overall": f"{score.overall:.2f}",
            "skill_score": f"{score.skill_score:.2f}",
            "salary_score": f"{score.salary_score:.2f}",
            "seniority_score": f"{score.seniority_score:.2f}",
            "remote_score": f"{score.remote_score:.2f}",
            "action": score.action.value,
            "confidence": f"{score.confidence:.2f}",
        })
        return vacancy.with_score(score)

    def score_history(self, key: tuple[str, str]) -> list[dict[str, str]]:
        return [r for r in self._scores.rows() if (r["platform"], r["url"]) == key]
