"""Offer comparison and negotiation advice."""
from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from careerpilot.config import Settings
from careerpilot.errors import InsufficientDataError
from careerpilot.models import MarketSnapshot, NegotiationStage, Offer, OfferWeights, Seniority
from careerpilot.offers import NegotiationAdvisor, OfferComparator, latest_revisions, money


def _offer(offer_id, company, total, level=Seniority.SENIOR, stage="growth", stack=(), **kw):
    return Offer(
        offer_id=offer_id,
        company=company,
        base_comp=total,
        total_comp=total,
        level=level,
        growth_stage=stage,
        tech_stack=frozenset(stack),
        **kw,
    )


@pytest.fixture
def snapshot():
    return MarketSnapshot(
        date=date(2024, 3, 1),
        platform="all",
        total_vacancies=20,
        skill_frequency={},
        avg_salary_by_level={Seniority.SENIOR: 150_000.0},
        max_salary_by_level={Seniority.SENIOR: 180_000.0},
        remote_distribution={},
    )


# ── Comparison ──────────────────────────────────────────────────────────


@pytest.mark.parametrize("count", [0, 1])
def test_fewer_than_two_offers_fail(profile, count):
    offers = [_offer("a", "Alpha", 100_000)][:count]
    with pytest.raises(InsufficientDataError):
        OfferComparator(profile).compare(offers)


def test_two_offers_normalize_to_full_range(profile):
    # Gamma pays more, Delta is a better stack fit; growth identical
    gamma = _offer("g", "Gamma", 180_000, stack={"java"})
    delta = _offer("d", "Delta", 140_000, stack={"python", "django"})
    comparison = OfferComparator(profile).compare([gamma, delta])
    by_id = {r.offer.offer_id: r for r in comparison.rankings}

    assert (by_id["g"].comp_score, by_id["d"].comp_score) == (100.0, 0.0)
    assert (by_id["g"].stack_score, by_id["d"].stack_score) == (0.0, 100.0)
    # identical growth value leaves no spread to normalize
    assert by_id["g"].growth_score == by_id["d"].growth_score == 100.0


def test_dominant_offer_ranks_first(profile):
    alpha = _offer("a", "Alpha", 170_000, stage="growth", stack={"python", "django", "aws"})
    beta = _offer("b", "Beta", 140_000, stage="public", stack={"java", "spring"})
    comparison = OfferComparator(profile).compare([beta, alpha])

    top, runner = comparison.rankings
    assert (top.offer.company, top.rank, top.overall) == ("Alpha", 1, 100.0)
    assert (runner.offer.company, runner.rank, runner.overall) == ("Beta", 2, 0.0)
    assert top.verdict.startswith("Excellent offer")
    assert runner.verdict.startswith("Weak offer")
    assert comparison.recommendation.startswith("Top recommendation: Alpha (score: 100.0/100).")
    assert "Largest differentiator over Beta" in comparison.recommendation


def test_compare_does_not_mutate_offers(profile):
    offers = [_offer("a", "Alpha", 170_000), _offer("b", "Beta", 140_000)]
    before = list(offers)
    OfferComparator(profile).compare(offers)
    assert offers == before


def test_equity_is_annualized_with_discount(profile):
    comparator = OfferComparator(profile, Settings(equity_discount=0.25))
    offer = _offer("e", "Equity Inc", 100_000, equity=40_000, vesting_years=4)
    assert comparator.annualized_comp(offer) == 107_500


def test_explicit_offer_weights(profile):
    weighted = replace(profile, offer_weights=OfferWeights(comp=1.0, growth=0.0, stack=0.0))
    cheap_fit = _offer("a", "Alpha", 120_000, stack={"python", "django", "aws"}, stage="seed")
    rich = _offer("b", "Beta", 200_000, stage="enterprise")
    top = OfferComparator(weighted).compare([cheap_fit, rich]).rankings[0]
    assert top.offer.company == "Beta"
    assert top.overall == top.comp_score == 100.0


def test_ties_break_by_company_name(profile):
    offers = [_offer("z", "Zulu", 150_000), _offer("m", "Mike", 150_000), _offer("a", "alpha", 150_000)]
    rankings = OfferComparator(profile).compare(offers).rankings
    assert [r.offer.company for r in rankings] == ["alpha", "Mike", "Zulu"]
    assert "very close" in OfferComparator(profile).compare(offers).recommendation


def test_latest_revisions_supersede_earlier():
    first = _offer("a", "Alpha", 100_000)
    second = replace(first, total_comp=110_000, revision=2)
    other = _offer("b", "Beta", 90_000)
    assert latest_revisions([first, other, second]) == [second, other]


# ── Negotiation ─────────────────────────────────────────────────────────


@pytest.mark.parametrize("total, assessment, counter", [
    (120_000, "Below market", 134_400),
    (150_000, "At market", 162_000),
    (170_000, "Above market", 176_800),
    # 175K * 1.04 = 182K, capped at the observed maximum
    (175_000, "Above market", 180_000),
])
def test_assessment_and_counter(profile, snapshot, total, assessment, counter):
    strategy = NegotiationAdvisor(profile).advise(_offer("x", "Xco", total), snapshot)
    assert strategy.assessment == assessment
    assert strategy.suggested_counter == pytest.approx(counter)
    assert strategy.should_negotiate


def test_offer_above_market_maximum(profile, snapshot):
    strategy = NegotiationAdvisor(profile).advise(_offer("x", "Xco", 190_000), snapshot)
    assert strategy.should_negotiate is False
    assert strategy.suggested_counter == 190_000


def test_no_market_data_for_level(profile, snapshot):
    offer = _offer("x", "Xco", 200_000, level=Seniority.LEAD)
    strategy = NegotiationAdvisor(profile).advise(offer, snapshot)
    assert strategy.assessment == "At market"
    assert strategy.suggested_counter == pytest.approx(216_000)
    assert strategy.counter_justification.startswith("No market data for Lead level")


def test_batna_is_best_competing_offer_score(profile, snapshot):
    mine = _offer("x", "Xco", 120_000, stack={"python"})
    rival = _offer("y", "Yco", 160_000, stage="public", stack={"java"})
    strategy = NegotiationAdvisor(profile).advise(mine, snapshot, other_offers=[mine, rival])

    # Yco: comp 100, growth 0, stack 0
    assert strategy.batna_value == pytest.approx(33.33, abs=0.01)
    assert "Competing offer at $160,000 from Yco" in strategy.leverage_points
    assert "1 competing offer(s) in hand" in strategy.leverage_points


def test_batna_ignores_inactive_and_superseded(profile, snapshot):
    mine = _offer("x", "Xco", 120_000)
    declined = replace(_offer("y", "Yco", 160_000), stage=NegotiationStage.DECLINED)
    rival_v1 = _offer("z", "Zco", 170_000)
    rival_v2 = replace(rival_v1, revision=2, stage=NegotiationStage.EXPIRED)

    strategy = NegotiationAdvisor(profile).advise(mine, snapshot, other_offers=[declined, rival_v1, rival_v2])
    assert strategy.batna_value == 0.0
    assert not any("competing" in p for p in strategy.leverage_points)


def test_script_is_deterministic(profile, snapshot):
    advisor = NegotiationAdvisor(profile)
    offer = _offer("x", "Xco", 120_000)
    first = advisor.advise(offer, snapshot)
    second = advisor.advise(offer, snapshot)

    assert first == second
    assert first.script.startswith('"Thank you for the offer from Xco.')
    assert "I believe a compensation of $134,400" in first.script
    assert "Key points to support this:" in first.script
    assert "  - Current offer is 20% below the market average of $150,000" in first.script


def test_risk_tiers(profile, snapshot):
    advisor = NegotiationAdvisor(profile)
    assert advisor.advise(_offer("x", "Xco", 120_000), snapshot).risk_assessment.startswith("LOW")
    assert advisor.advise(_offer("x", "Xco", 170_000), snapshot).risk_assessment.startswith("VERY LOW")


def test_money_formatting():
    assert money(134_400) == "$134,400"
    assert money(60_000, "eur") == "60,000 EUR"
