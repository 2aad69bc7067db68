"""VacancyStore: uniqueness, queries, score history."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from careerpilot.errors import ValidationError
from careerpilot.models import Seniority
from careerpilot.store import VacancyStore


def test_duplicate_identity_rejected(tmp_path, make_vacancy):
    store = VacancyStore(tmp_path)
    v = make_vacancy()
    store.add(v)
    with pytest.raises(ValidationError, match="Duplicate"):
        store.add(replace(v, title="Same URL, new title"))
    assert len(store) == 1


def test_same_url_on_another_platform_is_distinct(tmp_path, make_vacancy):
    store = VacancyStore(tmp_path)
    v = make_vacancy()
    store.add(v)
    store.add(replace(v, platform="other"))
    assert len(store) == 2


def test_add_many_counts_skipped_and_failed(tmp_path, make_vacancy):
    store = VacancyStore(tmp_path)
    existing = store.add(make_vacancy())
    fresh = make_vacancy()
    inverted = make_vacancy(salary_min=200_000, salary_max=100_000)
    no_url = make_vacancy(url="")

    added, skipped, failed = store.add_many([existing, fresh, fresh, inverted, no_url])

    assert [v.key for v in added] == [fresh.key]
    assert (skipped, failed) == (2, 2)
    assert inverted.key not in store


def test_records_survive_reopen(tmp_path, make_vacancy):
    original = make_vacancy(
        required_skills={"python", "c#", "node.js"},
        salary_min=90_000,
        salary_max=120_000,
        currency="EUR",
        description="Line one\nline two, with commas",
    )
    VacancyStore(tmp_path).add(original)

    reopened = VacancyStore(tmp_path)
    assert original.key in reopened
    [loaded] = reopened.query(platform=original.platform)
    assert loaded.key == original.key
    assert loaded.required_skills == original.required_skills
    assert (loaded.salary_min, loaded.salary_max, loaded.currency) == (90_000, 120_000, "EUR")
    assert loaded.description == original.description
    assert loaded.seniority is original.seniority
    assert loaded.posted_at == original.posted_at
    assert ("test", "https://missing") not in reopened


def test_query_filters(tmp_path, make_vacancy):
    store = VacancyStore(tmp_path)
    old_scrape = datetime(2024, 1, 1, tzinfo=timezone.utc)
    a = store.add(make_vacancy(platform="remotive", seniority=Seniority.JUNIOR, scraped_at=old_scrape))
    b = store.add(make_vacancy(platform="adzuna", seniority=Seniority.LEAD))
    c = store.add(make_vacancy(platform="remotive", seniority=Seniority.SENIOR))

    assert [v.key for v in store.query()] == [a.key, b.key, c.key]
    assert [v.key for v in store.query(platform="remotive")] == [a.key, c.key]
    assert [v.key for v in store.query(min_seniority=Seniority.SENIOR)] == [b.key, c.key]
    since = old_scrape + timedelta(days=1)
    assert [v.key for v in store.query(platform="remotive", since=since)] == [c.key]


def test_attach_score_appends_history(tmp_path, engine, make_vacancy):
    store = VacancyStore(tmp_path)
    v = store.add(make_vacancy())
    score = engine.compute_match(v)

    scored = store.attach_score(v, score)
    engine.reload_profile(engine.profile)
    store.attach_score(v, engine.compute_match(v))

    assert scored.match_score is score
    history = store.score_history(v.key)
    assert [h["profile_version"] for h in history] == ["1", "2"]
    assert history[0]["overall"] == f"{score.overall:.2f}"
    assert history[0]["action"] == score.action.value


def test_out_of_range_score_rejected(tmp_path, engine, make_vacancy):
    store = VacancyStore(tmp_path)
    v = store.add(make_vacancy())
    bad = replace(engine.compute_match(v), overall=120.0)
    with pytest.raises(ValidationError):
        store.attach_score(v, bad)
    assert store.score_history(v.key) == []


def test_concurrent_platform_appends(tmp_path, make_vacancy):
    store = VacancyStore(tmp_path)
    batches = {
        platform: [make_vacancy(platform=platform) for _ in range(20)]
        for platform in ("a", "b", "c", "d")
    }
    threads = [threading.Thread(target=store.add_many, args=(batch,)) for batch in batches.values()]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(VacancyStore(tmp_path)) == 80
    assert len(VacancyStore(tmp_path).query(platform="c")) == 20
