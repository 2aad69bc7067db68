"""Outcome and offer event logs."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from careerpilot.errors import ValidationError
from careerpilot.history import OfferLog, OutcomeLog
from careerpilot.models import InterviewOutcome, NegotiationStage, Offer, Seniority


def _outcome(day, passed, **kw):
    fields = dict(company="Acme", round_type="technical", passed=passed,
                  occurred_at=datetime(2024, 2, day, tzinfo=timezone.utc))
    fields.update(kw)
    return InterviewOutcome(**fields)


def _offer(offer_id="o1", **kw):
    fields = dict(offer_id=offer_id, company="Acme", base_comp=140_000, total_comp=160_000, level=Seniority.SENIOR)
    fields.update(kw)
    return Offer(**fields)


def test_outcomes_are_appended_in_order(tmp_path):
    log = OutcomeLog(tmp_path)
    first = _outcome(3, False, weak_areas=("system-design", "sql"), rejection_reason="Weak design",
                     vacancy_key=("remotive", "https://r/1"))
    second = _outcome(1, True)
    log.append(first)
    log.append(second)

    assert OutcomeLog(tmp_path).all() == [first, second]


def test_outcome_needs_company_and_round(tmp_path):
    with pytest.raises(ValidationError):
        OutcomeLog(tmp_path).append(_outcome(1, True, company=""))
    assert OutcomeLog(tmp_path).all() == []


def test_offer_revisions_supersede(tmp_path):
    log = OfferLog(tmp_path)
    log.append(_offer(tech_stack=frozenset({"python", "aws"})))
    log.append(_offer(total_comp=170_000, revision=2, stage=NegotiationStage.NEGOTIATING))
    log.append(_offer("o2", company="Beta"))

    latest = OfferLog(tmp_path).latest()
    assert latest["o1"].revision == 2
    assert latest["o1"].total_comp == 170_000
    assert latest["o1"].stage is NegotiationStage.NEGOTIATING
    assert len(log.all()) == 3
    assert log.all()[0].tech_stack == frozenset({"python", "aws"})


def test_stale_revision_rejected(tmp_path):
    log = OfferLog(tmp_path)
    log.append(_offer(revision=2))
    with pytest.raises(ValidationError, match="does not supersede"):
        log.append(_offer(revision=2))
    with pytest.raises(ValidationError):
        log.append(_offer(revision=1))


@pytest.mark.parametrize("bad", [
    {"total_comp": -1},
    {"base_comp": -5},
    {"vesting_years": 0},
])
def test_invalid_offers_rejected(tmp_path, bad):
    with pytest.raises(ValidationError):
        OfferLog(tmp_path).append(_offer(**bad))


def test_active_offers_use_latest_stage(tmp_path):
    log = OfferLog(tmp_path)
    log.append(_offer("o1"))
    log.append(_offer("o1", revision=2, stage=NegotiationStage.DECLINED))
    log.append(_offer("o2", stage=NegotiationStage.NEGOTIATING))
    log.append(_offer("o3", stage=NegotiationStage.ACCEPTED))

    assert [o.offer_id for o in log.active()] == ["o2"]


def test_offer_round_trip_keeps_vacancy_link(tmp_path):
    log = OfferLog(tmp_path)
    offer = replace(_offer(), vacancy_key=("adzuna", "https://a/9"), equity=40_000, growth_stage="series_b")
    log.append(offer)
    [loaded] = log.all()
    assert loaded.vacancy_key == ("adzuna", "https://a/9")
    assert loaded.equity == 40_000
    assert loaded.growth_stage == "series_b"
    assert loaded.recorded_at == offer.recorded_at
