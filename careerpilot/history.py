"""Append-only interview outcome and offer logs."""
from __future__ import annotations

from pathlib import Path

from careerpilot.config import DATA_DIR
from careerpilot.errors import ValidationError
from careerpilot.log import get_logger
from careerpilot.models import InterviewOutcome, NegotiationStage, Offer, Seniority, utcnow
from careerpilot.store import CsvTable, iso, num, parse_dt

log = get_logger(__name__)

OUTCOME_HEADERS: list[str] = [
    "company", "round_type", "passed", "occurred_at", "weak_areas",
    "rejection_reason", "vacancy_platform", "vacancy_url",
]
OFFER_HEADERS: list[str] = [
    "offer_id", "revision", "company", "base_comp", "total_comp", "equity",
    "vesting_years", "level", "growth_stage", "tech_stack", "stage", "currency",
    "vacancy_platform", "vacancy_url", "recorded_at",
]


def _split_key(key: tuple[str, str] | None) -> tuple[str, str]:
    return key if key else ("", "")


def _join_key(platform: str, url: str) -> tuple[str, str] | None:
    return (platform, url) if platform or url else None


class OutcomeLog:
    """Interview outcomes in the order they were recorded. Never rewritten."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self._table = CsvTable((data_dir or DATA_DIR) / "outcomes.csv", OUTCOME_HEADERS)

    def append(self, outcome: InterviewOutcome) -> InterviewOutcome:
        if not outcome.company or not outcome.round_type:
            raise ValidationError("Outcome needs company and round_type")
        platform, url = _split_key(outcome.vacancy_key)
        self._table.append({
            "company": outcome.company,
            "round_type": outcome.round_type,
            "passed": "1" if outcome.passed else "0",
            "occurred_at": iso(outcome.occurred_at),
            "weak_areas": ";".join(outcome.weak_areas),
            "rejection_reason": outcome.rejection_reason or "",
            "vacancy_platform": platform,
            "vacancy_url": url,
        })
        log.info(
            "Outcome recorded: %s %s → %s",
            outcome.company, outcome.round_type, "pass" if outcome.passed else "fail",
        )
        return outcome

    def all(self) -> list[InterviewOutcome]:
        return [
            InterviewOutcome(
                company=r["company"],
                round_type=r["round_type"],
                passed=r["passed"] == "1",
                occurred_at=parse_dt(r["occurred_at"]),
                weak_areas=tuple(t for t in (r.get("weak_areas") or "").split(";") if t),
                rejection_reason=r.get("rejection_reason") or None,
                vacancy_key=_join_key(r.get("vacancy_platform", ""), r.get("vacancy_url", "")),
            )
            for r in self._table.rows()
        ]


class OfferLog:
    """Offer revisions; the newest revision of an offer_id supersedes the rest."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self._table = CsvTable((data_dir or DATA_DIR) / "offers.csv", OFFER_HEADERS)

    def append(self, offer: Offer) -> Offer:
        if offer.total_comp < 0 or offer.base_comp < 0:
            raise ValidationError(f"Negative compensation in offer {offer.offer_id}")
        if offer.vesting_years <= 0:
            raise ValidationError(f"vesting_years must be positive in offer {offer.offer_id}")
        current = self.latest().get(offer.offer_id)
        if current is not None and offer.revision <= current.revision:
            raise ValidationError(
                f"Offer {offer.offer_id} revision {offer.revision} does not supersede "
                f"revision {current.revision}"
            )
        platform, url = _split_key(offer.vacancy_key)
        self._table.append({
            "offer_id": offer.offer_id,
            "revision": str(offer.revision),
            "company": offer.company,
            "base_comp": num(offer.base_comp),
            "total_comp": num(offer.total_comp),
            "equity": num(offer.equity),
            "vesting_years": num(offer.vesting_years),
            "level": offer.level.name,
            "growth_stage": offer.growth_stage,
            "tech_stack": ";".join(sorted(offer.tech_stack)),
            "stage": offer.stage.value,
            "currency": offer.currency,
            "vacancy_platform": platform,
            "vacancy_url": url,
            "recorded_at": iso(offer.recorded_at),
        })
        log.info("Offer recorded: %s rev %d (%s)", offer.company, offer.revision, offer.stage.value)
        return offer

    def all(self) -> list[Offer]:
        return [
            Offer(
                offer_id=r["offer_id"],
                revision=int(r["revision"]),
                company=r["company"],
                base_comp=float(r["base_comp"]),
                total_comp=float(r["total_comp"]),
                equity=float(r.get("equity") or 0),
                vesting_years=float(r.get("vesting_years") or 4),
                level=Seniority[r.get("level") or "UNKNOWN"],
                growth_stage=r.get("growth_stage") or "growth",
                tech_stack=frozenset(t for t in (r.get("tech_stack") or "").split(";") if t),
                stage=NegotiationStage(r.get("stage") or "received"),
                currency=r.get("currency") or "USD",
                vacancy_key=_join_key(r.get("vacancy_platform", ""), r.get("vacancy_url", "")),
                recorded_at=parse_dt(r.get("recorded_at")) or utcnow(),
            )
            for r in self._table.rows()
        ]

    def latest(self) -> dict[str, Offer]:
        """offer_id → newest revision."""
        current: dict[str, Offer] = {}
        for offer in self.all():
            prev = current.get(offer.offer_id)
            if prev is None or offer.revision > prev.revision:
                current[offer.offer_id] = offer
        return current

    def active(self) -> list[Offer]:
        return [o for o in self.latest().values() if o.stage.is_active]
