"""Offer comparison and negotiation advice."""
from __future__ import annotations

from string import Template
from typing import Iterable, Sequence

from careerpilot.config import Settings
from careerpilot.errors import InsufficientDataError
from careerpilot.log import get_logger
from careerpilot.models import (
    MarketSnapshot,
    NegotiationStrategy,
    Offer,
    OfferComparison,
    OfferWeights,
    Profile,
    RankedOffer,
)

log = get_logger(__name__)

MIN_OFFERS = 2
CLOSE_CALL_POINTS = 5.0
MAX_SCRIPT_POINTS = 3

BELOW_MARKET = "Below market"
AT_MARKET = "At market"
ABOVE_MARKET = "Above market"

_DIMENSIONS = ("compensation", "growth potential", "tech stack alignment")

_SCRIPT = Template(
    "\"Thank you for the offer from $company. I'm genuinely excited about this opportunity.\n"
    "\n"
    "$ask\n"
    "$points"
    "\n"
    "I'm confident we can find a number that works for both of us. "
    "I'm very interested in joining the team and contributing to the company's success.\""
)
_ASK_BELOW = Template(
    "After researching market rates for this role and considering my experience, "
    "I believe a compensation of $counter would better reflect the value I'd bring to the team."
)
_ASK_DEFAULT = Template(
    "I'd like to discuss the compensation. Based on my research and qualifications, "
    "I'd like to propose $counter."
)


def money(amount: float, currency: str = "USD") -> str:
    if currency.upper() == "USD":
        return f"${amount:,.0f}"
    return f"{amount:,.0f} {currency.upper()}"


def _norm_set(values: Iterable[str]) -> set[str]:
    return {v.strip().lower() for v in values if v and v.strip()}


def _min_max(values: Sequence[float]) -> list[float]:
    lo, hi = min(values), max(values)
    if hi == lo:
        return [100.0] * len(values)
    return [100.0 * (v - lo) / (hi - lo) for v in values]


def latest_revisions(offers: Iterable[Offer]) -> list[Offer]:
    """Drop superseded revisions, keeping first-seen order of offer ids."""
    current: dict[str, Offer] = {}
    for o in offers:
        prev = current.get(o.offer_id)
        if prev is None or o.revision > prev.revision:
            current[o.offer_id] = o
    return list(current.values())


class OfferComparator:
    """Ranks offers relative to each other; scores are only meaningful within one batch."""

    def __init__(self, profile: Profile, settings: Settings | None = None) -> None:
        self.profile = profile
        self.settings = settings or Settings()

    def annualized_comp(self, offer: Offer) -> float:
        equity = offer.equity / offer.vesting_years if offer.vesting_years > 0 else 0.0
        return offer.total_comp + equity * (1 - self.settings.equity_discount)

    def growth_value(self, offer: Offer) -> float:
        stage = offer.growth_stage.strip().lower()
        return int(offer.level) + self.settings.growth_stage_weights.get(stage, 0.0)

    def stack_overlap(self, offer: Offer) -> float:
        wanted = _norm_set(self.profile.preferred_stack) | _norm_set(self.profile.learning_goals)
        stack = _norm_set(offer.tech_stack)
        union = wanted | stack
        return len(wanted & stack) / len(union) if union else 0.0

    def compare(self, offers: Iterable[Offer]) -> OfferComparison:
        batch = list(offers)
        if len(batch) < MIN_OFFERS:
            raise InsufficientDataError(
                f"Need at least {MIN_OFFERS} offers to compare, got {len(batch)}",
                available=len(batch),
                required=MIN_OFFERS,
            )

        comp = _min_max([self.annualized_comp(o) for o in batch])
        growth = _min_max([self.growth_value(o) for o in batch])
        stack = _min_max([self.stack_overlap(o) for o in batch])
        weights = self.profile.offer_weights

        scored = []
        for i, offer in enumerate(batch):
            if weights is None:
                overall = (comp[i] + growth[i] + stack[i]) / 3
            else:
                overall = weights.comp * comp[i] + weights.growth * growth[i] + weights.stack * stack[i]
            scored.append((offer, comp[i], growth[i], stack[i], round(overall, 2)))

        scored.sort(key=lambda row: (-row[4], row[0].company.lower(), row[0].offer_id))
        rankings = [
            RankedOffer(
                offer=offer,
                rank=rank,
                comp_score=round(c, 2),
                growth_score=round(g, 2),
                stack_score=round(s, 2),
                overall=overall,
                verdict=self._verdict(overall, c, g, s),
            )
            for rank, (offer, c, g, s, overall) in enumerate(scored, start=1)
        ]
        comparison = OfferComparison(rankings=rankings, recommendation=self._recommend(rankings, weights))
        log.info("Compared %d offers → top: %s (%.1f)", len(batch), rankings[0].offer.company, rankings[0].overall)
        return comparison

    @staticmethod
    def _verdict(overall: float, comp: float, growth: float, stack: float) -> str:
        if overall >= 80:
            return "Excellent offer - strong across all dimensions"
        if overall >= 65:
            return "Good offer - consider accepting with minor negotiation"
        if overall >= 50:
            if comp < 50:
                weak = "compensation trails the other offers"
            elif growth < 50:
                weak = "growth potential may be limited"
            elif stack < 50:
                weak = "tech stack alignment could be better"
            else:
                weak = "some trade-offs exist"
            return f"Decent offer but {weak}"
        if overall >= 35:
            return "Below average - significant negotiation needed or consider other options"
        return "Weak offer - likely better to pursue alternatives"

    def _recommend(self, rankings: list[RankedOffer], weights: OfferWeights | None) -> str:
        top, runner = rankings[0], rankings[1]
        parts = [f"Top recommendation: {top.offer.company} (score: {top.overall:.1f}/100)."]

        w = weights or OfferWeights()
        deltas = [
            w.comp * (top.comp_score - runner.comp_score),
            w.growth * (top.growth_score - runner.growth_score),
            w.stack * (top.stack_score - runner.stack_score),
        ]
        best = max(range(len(deltas)), key=lambda i: deltas[i])
        raw = (
            top.comp_score - runner.comp_score,
            top.growth_score - runner.growth_score,
            top.stack_score - runner.stack_score,
        )[best]
        parts.append(
            f"Largest differentiator over {runner.offer.company}: {_DIMENSIONS[best]} ({raw:+.0f} points)."
        )

        diff = top.overall - runner.overall
        if diff < CLOSE_CALL_POINTS:
            parts.append(
                f"{runner.offer.company} is very close (score: {runner.overall:.1f}). "
                "Consider non-quantifiable factors like team culture and commute."
            )

        target = self.profile.salary_target
        if target and top.offer.total_comp < target:
            parts.append(
                f"Note: even the top offer ({money(top.offer.total_comp, top.offer.currency)}) is below "
                f"your target of {money(target, self.profile.currency)}. Negotiate before accepting."
            )
        return " ".join(parts)


class NegotiationAdvisor:
    """Counter-offer guidance from market data and competing offers."""

    def __init__(
        self,
        profile: Profile,
        settings: Settings | None = None,
        comparator: OfferComparator | None = None,
    ) -> None:
        self.profile = profile
        self.settings = settings or Settings()
        self.comparator = comparator or OfferComparator(profile, self.settings)

    def advise(
        self,
        offer: Offer,
        snapshot: MarketSnapshot,
        other_offers: Iterable[Offer] = (),
    ) -> NegotiationStrategy:
        s = self.settings
        avg = snapshot.avg_salary_by_level.get(offer.level)
        market_max = snapshot.max_salary_by_level.get(offer.level)
        comp = offer.total_comp

        note = ""
        if not avg:
            assessment = AT_MARKET
            note = f"No market data for {offer.level.name.title()} level; assuming at market."
        else:
            ratio = comp / avg
            if ratio < 0.9:
                assessment = BELOW_MARKET
            elif ratio > 1.1:
                assessment = ABOVE_MARKET
            else:
                assessment = AT_MARKET

        uplift = {BELOW_MARKET: s.uplift_below, AT_MARKET: s.uplift_at, ABOVE_MARKET: s.uplift_above}[assessment]
        counter = comp * (1 + uplift)
        if market_max:
            counter = min(counter, market_max)
        counter = round(max(counter, comp), 2)
        should_negotiate = not (market_max and comp > market_max)

        alternatives = [
            o for o in latest_revisions(other_offers)
            if o.offer_id != offer.offer_id and o.stage.is_active
        ]
        batna = self._batna(offer, alternatives)

        leverage = self._leverage(offer, alternatives, avg, market_max)
        justification = self._justification(offer, counter, avg, market_max, leverage)
        if note:
            justification = f"{note} {justification}"

        strategy = NegotiationStrategy(
            assessment=assessment,
            suggested_counter=counter,
            should_negotiate=bool(should_negotiate),
            batna_value=batna,
            leverage_points=leverage,
            counter_justification=justification,
            risk_assessment=self._risk(comp, counter, bool(alternatives)),
            script=self._script(offer, counter, assessment, leverage),
        )
        log.info(
            "Negotiation advice for %s: %s, counter %s, BATNA %.1f",
            offer.company, assessment, money(counter, offer.currency), batna,
        )
        return strategy

    def _batna(self, offer: Offer, alternatives: list[Offer]) -> float:
        if not alternatives:
            return 0.0
        comparison = self.comparator.compare([offer, *alternatives])
        ids = {o.offer_id for o in alternatives}
        return max(r.overall for r in comparison.rankings if r.offer.offer_id in ids)

    def _leverage(
        self,
        offer: Offer,
        alternatives: list[Offer],
        avg: float | None,
        market_max: float | None,
    ) -> list[str]:
        points: list[str] = []
        cur = offer.currency
        if alternatives:
            best = max(alternatives, key=lambda o: o.total_comp)
            if best.total_comp > offer.total_comp:
                points.append(f"Competing offer at {money(best.total_comp, best.currency)} from {best.company}")
            points.append(f"{len(alternatives)} competing offer(s) in hand")
        if avg and offer.total_comp < avg:
            gap = (1 - offer.total_comp / avg) * 100
            points.append(f"Current offer is {gap:.0f}% below the market average of {money(avg, cur)}")
        if market_max and market_max > offer.total_comp:
            points.append(f"Comparable {offer.level.name.title()} roles pay up to {money(market_max, cur)}")
        target = self.profile.salary_target
        if target and target > offer.total_comp:
            points.append(f"Your target salary ({money(target, self.profile.currency)}) exceeds the current offer")
        floor = self.profile.salary_floor
        if floor and floor > offer.total_comp:
            points.append(f"The offer is below your minimum of {money(floor, self.profile.currency)}")
        return points

    @staticmethod
    def _justification(
        offer: Offer,
        counter: float,
        avg: float | None,
        market_max: float | None,
        leverage: list[str],
    ) -> str:
        cur = offer.currency
        parts: list[str] = []
        if avg and offer.total_comp < avg:
            parts.append(
                f"Market data shows an average of {money(avg, cur)} for this level, while the "
                f"current offer of {money(offer.total_comp, cur)} falls below that benchmark."
            )
        if leverage:
            parts.append(f"Key leverage factors support a higher offer: {'; '.join(leverage[:MAX_SCRIPT_POINTS])}.")
        if market_max:
            parts.append(
                f"The suggested counter of {money(counter, cur)} stays within the observed "
                f"maximum of {money(market_max, cur)} for comparable positions."
            )
        if not parts:
            return f"A counter of {money(counter, cur)} reflects your qualifications and market positioning."
        return " ".join(parts)

    @staticmethod
    def _risk(comp: float, counter: float, has_alternatives: bool) -> str:
        increase = (counter - comp) / comp * 100 if comp > 0 else 0.0
        if increase > 25:
            if has_alternatives:
                return "HIGH: Counter is >25% above offer. Aggressive but you have alternatives if they decline."
            return "VERY HIGH: Counter is >25% above offer with no backup. Consider a more moderate counter."
        if increase > 15:
            if has_alternatives:
                return "MODERATE: Counter is 15-25% above offer. Reasonable with competing offers as leverage."
            return "MODERATE-HIGH: Counter is 15-25% above offer. Be prepared to negotiate down."
        if increase > 8:
            return "LOW: Counter is 8-15% above offer. This is a standard negotiation range."
        return "VERY LOW: Counter is within 8% of offer. Most employers expect and accept this range."

    @staticmethod
    def _script(offer: Offer, counter: float, assessment: str, leverage: list[str]) -> str:
        ask_template = _ASK_BELOW if assessment == BELOW_MARKET else _ASK_DEFAULT
        ask = ask_template.substitute(counter=money(counter, offer.currency))
        points = ""
        if leverage:
            lines = "".join(f"  - {p}\n" for p in leverage[:MAX_SCRIPT_POINTS])
            points = f"\nKey points to support this:\n{lines}"
        return _SCRIPT.substitute(company=offer.company, ask=ask, points=points)
