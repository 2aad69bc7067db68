"""Data models for vacancies, profile, scores, outcomes and offers."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Mapping

from careerpilot.errors import ConfigurationError


class Seniority(enum.IntEnum):
    UNKNOWN = 0
    INTERN = 1
    JUNIOR = 2
    MIDDLE = 3
    SENIOR = 4
    LEAD = 5
    ARCHITECT = 6
    PRINCIPAL = 7

    @classmethod
    def parse(cls, value: str | int | None) -> "Seniority":
        if value is None or value == "":
            return cls.UNKNOWN
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ConfigurationError(f"Unknown seniority level: {value!r}") from None
        key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        aliases = {"MID": "MIDDLE", "MID_LEVEL": "MIDDLE", "INTERMEDIATE": "MIDDLE", "STAFF": "LEAD"}
        try:
            return cls[aliases.get(key, key)]
        except KeyError:
            raise ConfigurationError(f"Unknown seniority level: {value!r}") from None


class RemotePolicy(enum.Enum):
    UNKNOWN = "unknown"
    ONSITE = "onsite"
    HYBRID = "hybrid"
    REMOTE_FRIENDLY = "remote_friendly"
    REMOTE = "remote"

    @classmethod
    def parse(cls, value: str | None) -> "RemotePolicy":
        if not value:
            return cls.UNKNOWN
        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {"on_site": "onsite", "office": "onsite", "fully_remote": "remote"}
        try:
            return cls(aliases.get(key, key))
        except ValueError:
            raise ConfigurationError(f"Unknown remote policy: {value!r}") from None


class RecommendedAction(enum.Enum):
    APPLY = "apply"
    PREPARE_AND_APPLY = "prepare_and_apply"
    SKILL_GAP_TOO_LARGE = "skill_gap_too_large"
    SKIP = "skip"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS: dict[RecommendedAction, str] = {
    RecommendedAction.APPLY: "Apply Now",
    RecommendedAction.PREPARE_AND_APPLY: "Prepare & Apply",
    RecommendedAction.SKILL_GAP_TOO_LARGE: "Skill Gap Too Large",
    RecommendedAction.SKIP: "Skip",
}


class NegotiationStage(enum.Enum):
    RECEIVED = "received"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"

    @property
    def is_active(self) -> bool:
        return self in (NegotiationStage.RECEIVED, NegotiationStage.NEGOTIATING)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Scoring ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScoringWeights:
    skills: float = 0.45
    salary: float = 0.25
    seniority: float = 0.15
    remote: float = 0.15

    def validate(self) -> "ScoringWeights":
        values = (self.skills, self.salary, self.seniority, self.remote)
        if any(v < 0 or v > 1 for v in values):
            raise ConfigurationError(f"Scoring weights must each lie in [0, 1]: {self}")
        total = sum(values)
        if abs(total - 1.0) > 1e-6:
            raise ConfigurationError(f"Scoring weights must sum to 1.0, got {total:.6f}")
        return self


@dataclass(frozen=True)
class OfferWeights:
    comp: float = 1 / 3
    growth: float = 1 / 3
    stack: float = 1 / 3

    def validate(self) -> "OfferWeights":
        total = self.comp + self.growth + self.stack
        if min(self.comp, self.growth, self.stack) < 0 or abs(total - 1.0) > 1e-6:
            raise ConfigurationError(f"Offer weights must be non-negative and sum to 1.0, got {total:.6f}")
        return self


@dataclass(frozen=True)
class MatchScore:
    overall: float
    skill_score: float
    salary_score: float
    seniority_score: float
    remote_score: float
    matching_skills: tuple[str, ...]
    missing_skills: tuple[str, ...]
    action: RecommendedAction
    reasons: tuple[str, ...] = ()
    confidence: float = 1.0
    profile_version: int = 0

    @property
    def action_label(self) -> str:
        return self.action.label

    def __str__(self) -> str:
        return (
            f"Score: {self.overall:.0f}/100 | {self.action_label} | "
            f"Match: {len(self.matching_skills)}, Missing: {len(self.missing_skills)}"
        )


# ── Vacancies ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Vacancy:
    platform: str
    url: str
    title: str
    company: str
    description: str = ""
    required_skills: frozenset[str] = frozenset()
    salary_min: float | None = None
    salary_max: float | None = None
    currency: str = "USD"
    seniority: Seniority = Seniority.UNKNOWN
    remote_policy: RemotePolicy = RemotePolicy.UNKNOWN
    posted_at: datetime | None = None
    scraped_at: datetime = field(default_factory=utcnow)
    match_score: MatchScore | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.platform, self.url)

    @property
    def has_salary(self) -> bool:
        return self.salary_min is not None or self.salary_max is not None

    def with_score(self, score: MatchScore) -> "Vacancy":
        return replace(self, match_score=score)

    def __str__(self) -> str:
        return f"[{self.platform}] {self.title} at {self.company} ({self.seniority.name}, {self.remote_policy.value})"


@dataclass(frozen=True)
class Profile:
    """Immutable snapshot of the user's skills and preferences."""

    skills: Mapping[str, float]
    salary_target: float | None = None
    salary_floor: float | None = None
    currency: str = "USD"
    seniority: Seniority = Seniority.UNKNOWN
    remote_policy: RemotePolicy = RemotePolicy.REMOTE
    blacklisted_companies: frozenset[str] = frozenset()
    blacklisted_keywords: frozenset[str] = frozenset()
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    gap_tolerance: int = 3
    preferred_stack: frozenset[str] = frozenset()
    learning_goals: frozenset[str] = frozenset()
    offer_weights: OfferWeights | None = None
    name: str = ""
    version: int = 0

    def validate(self) -> "Profile":
        self.weights.validate()
        if self.offer_weights is not None:
            self.offer_weights.validate()
        bad = {k: w for k, w in self.skills.items() if w <= 0}
        if bad:
            raise ConfigurationError(f"Skill weights must be positive: {bad}")
        if self.gap_tolerance < 1:
            raise ConfigurationError("gap_tolerance must be at least 1")
        if self.salary_target is not None and self.salary_target < 0:
            raise ConfigurationError("salary_target must not be negative")
        return self


# ── Market ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MarketSnapshot:
    date: date
    platform: str
    total_vacancies: int
    skill_frequency: Mapping[str, int]
    avg_salary_by_level: Mapping[Seniority, float]
    max_salary_by_level: Mapping[Seniority, float]
    remote_distribution: Mapping[RemotePolicy, int]

    def top_skills(self, limit: int = 15) -> list[tuple[str, int]]:
        return sorted(self.skill_frequency.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]


# ── Outcomes & offers ───────────────────────────────────────────────────


@dataclass(frozen=True)
class InterviewOutcome:
    company: str
    round_type: str
    passed: bool
    occurred_at: datetime
    weak_areas: tuple[str, ...] = ()
    rejection_reason: str | None = None
    vacancy_key: tuple[str, str] | None = None


@dataclass(frozen=True)
class Offer:
    offer_id: str
    company: str
    base_comp: float
    total_comp: float
    level: Seniority
    equity: float = 0.0
    vesting_years: float = 4.0
    growth_stage: str = "growth"
    tech_stack: frozenset[str] = frozenset()
    vacancy_key: tuple[str, str] | None = None
    stage: NegotiationStage = NegotiationStage.RECEIVED
    currency: str = "USD"
    revision: int = 1
    recorded_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class PrepAction:
    area: str
    action: str
    category: str
    priority: int
    estimated_hours: int


@dataclass
class FeedbackAnalysis:
    total_outcomes: int
    overall_pass_rate: float = 0.0
    pass_rate_by_round: dict[str, float] = field(default_factory=dict)
    trend: str = "Stable"
    repeating_weaknesses: list[tuple[str, int]] = field(default_factory=list)
    priority_adjustments: list[tuple[str, float]] = field(default_factory=list)
    new_prep_tasks: list[PrepAction] = field(default_factory=list)
    top_rejection_reasons: list[tuple[str, int]] = field(default_factory=list)
    summary: str = ""
    sufficient_data: bool = True

    @classmethod
    def not_enough_data(cls, total: int, required: int) -> "FeedbackAnalysis":
        return cls(
            total_outcomes=total,
            sufficient_data=False,
            summary=f"Not enough data: {total} outcome(s) recorded, {required} needed.",
        )


@dataclass(frozen=True)
class RankedOffer:
    offer: Offer
    rank: int
    comp_score: float
    growth_score: float
    stack_score: float
    overall: float
    verdict: str


@dataclass
class OfferComparison:
    rankings: list[RankedOffer] = field(default_factory=list)
    recommendation: str = ""
    sufficient_data: bool = True


@dataclass
class NegotiationStrategy:
    assessment: str
    suggested_counter: float
    should_negotiate: bool
    batna_value: float
    leverage_points: list[str] = field(default_factory=list)
    counter_justification: str = ""
    risk_assessment: str = ""
    script: str = ""


# ── Delivery & batch reporting ──────────────────────────────────────────


@dataclass
class DeliveryResult:
    channel: str
    chunks_total: int
    chunks_sent: int = 0
    cancelled: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled and self.chunks_sent == self.chunks_total


@dataclass
class BatchReport:
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    platform_errors: dict[str, str] = field(default_factory=dict)
    deliveries: list[DeliveryResult] = field(default_factory=list)
    ranked: list[Vacancy] = field(default_factory=list)
    snapshot: MarketSnapshot | None = None
    # per platform, plus the aggregate under "all"
    snapshots: dict[str, MarketSnapshot] = field(default_factory=dict)
    cancelled: bool = False

    def summary(self) -> str:
        sent = sum(1 for d in self.deliveries if d.ok)
        return (
            f"succeeded={self.succeeded}, skipped={self.skipped}, failed={self.failed}, "
            f"matches={len(self.ranked)}, channels_ok={sent}/{len(self.deliveries)}"
        )
