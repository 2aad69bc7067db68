"""Market snapshot aggregation."""
from __future__ import annotations

from datetime import date

from careerpilot.models import RemotePolicy, Seniority
from careerpilot.snapshot import ALL_PLATFORMS, build_snapshot, build_snapshots, salary_point


def test_salary_point(make_vacancy):
    assert salary_point(make_vacancy(salary_min=100, salary_max=200)) == 150
    assert salary_point(make_vacancy(salary_max=90)) == 90
    assert salary_point(make_vacancy(salary_min=80)) == 80
    assert salary_point(make_vacancy()) is None


def test_snapshot_aggregates_batch(make_vacancy):
    batch = [
        make_vacancy(required_skills={"python", "aws"}, salary_min=100_000, salary_max=140_000),
        make_vacancy(required_skills={"python"}, salary_max=160_000, remote_policy=RemotePolicy.HYBRID),
        make_vacancy(required_skills={"go"}, seniority=Seniority.JUNIOR, salary_min=60_000),
        make_vacancy(required_skills={"python"}, currency="EUR", salary_min=500_000),
    ]
    snap = build_snapshot(batch, day=date(2024, 3, 1))

    assert snap.date == date(2024, 3, 1)
    assert snap.total_vacancies == 4
    assert snap.skill_frequency == {"python": 3, "aws": 1, "go": 1}
    assert snap.top_skills(2) == [("python", 3), ("aws", 1)]
    # the EUR listing is left out of USD salary figures
    assert snap.avg_salary_by_level == {Seniority.SENIOR: 140_000, Seniority.JUNIOR: 60_000}
    assert snap.max_salary_by_level[Seniority.SENIOR] == 160_000
    assert snap.remote_distribution == {RemotePolicy.REMOTE: 3, RemotePolicy.HYBRID: 1}


def test_snapshot_for_one_platform(make_vacancy):
    batch = [make_vacancy(platform="remotive"), make_vacancy(platform="adzuna"), make_vacancy(platform="remotive")]
    snaps = build_snapshots(batch, day=date(2024, 3, 1))
    assert set(snaps) == {"remotive", "adzuna", ALL_PLATFORMS}
    assert snaps["remotive"].total_vacancies == 2
    assert snaps[ALL_PLATFORMS].total_vacancies == 3


def test_empty_snapshot():
    snap = build_snapshot([])
    assert snap.total_vacancies == 0
    assert snap.avg_salary_by_level == {}
    assert snap.top_skills() == []
