"""Market statistics over one scrape batch."""
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Iterable

from careerpilot.log import get_logger
from careerpilot.models import MarketSnapshot, RemotePolicy, Seniority, Vacancy, utcnow

log = get_logger(__name__)

ALL_PLATFORMS = "all"


def salary_point(v: Vacancy) -> float | None:
    """Midpoint of the listed range, or whichever bound is present."""
    if v.salary_min is not None and v.salary_max is not None:
        return (v.salary_min + v.salary_max) / 2
    if v.salary_max is not None:
        return v.salary_max
    return v.salary_min


def build_snapshot(
    vacancies: Iterable[Vacancy],
    platform: str = ALL_PLATFORMS,
    day: date | None = None,
    currency: str | None = "USD",
) -> MarketSnapshot:
    """Aggregate skills, salaries and remote policies.

    Only salaries listed in ``currency`` feed the per-level figures; pass
    ``currency=None`` to mix everything.
    """
    batch = [v for v in vacancies if platform == ALL_PLATFORMS or v.platform == platform]

    skills: Counter[str] = Counter()
    remote: Counter[RemotePolicy] = Counter()
    salaries: dict[Seniority, list[float]] = defaultdict(list)
    for v in batch:
        skills.update(v.required_skills)
        remote[v.remote_policy] += 1
        point = salary_point(v)
        if point is not None and (currency is None or v.currency == currency):
            salaries[v.seniority].append(point)

    snapshot = MarketSnapshot(
        date=day or utcnow().date(),
        platform=platform,
        total_vacancies=len(batch),
        skill_frequency=dict(skills),
        avg_salary_by_level={lvl: sum(vals) / len(vals) for lvl, vals in salaries.items()},
        max_salary_by_level={lvl: max(vals) for lvl, vals in salaries.items()},
        remote_distribution=dict(remote),
    )
    log.debug(
        "Snapshot %s: %d vacancies, %d skills, %d salary levels",
        platform, snapshot.total_vacancies, len(skills), len(salaries),
    )
    return snapshot


def build_snapshots(vacancies: Iterable[Vacancy], day: date | None = None) -> dict[str, MarketSnapshot]:
    """One snapshot per platform plus the aggregate under ``"all"``."""
    batch = list(vacancies)
    platforms = sorted({v.platform for v in batch})
    result = {p: build_snapshot(batch, platform=p, day=day) for p in platforms}
    result[ALL_PLATFORMS] = build_snapshot(batch, day=day)
    return result
