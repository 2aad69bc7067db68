"""Interview outcome analysis: pass rates, trend, repeating weaknesses."""
from __future__ import annotations

import re
from collections import Counter, defaultdict
from typing import Iterable

from careerpilot.config import Settings
from careerpilot.errors import InsufficientDataError
from careerpilot.log import get_logger
from careerpilot.models import FeedbackAnalysis, InterviewOutcome, PrepAction, Profile

log = get_logger(__name__)

MIN_OUTCOMES = 3
REPEAT_THRESHOLD = 2
TREND_DELTA = 10.0
TOP_REJECTION_REASONS = 5

CRITICAL_HOURS = 10

# Phrases in a rejection reason that name a weak area.
WEAK_AREA_KEYWORDS: dict[str, str] = {
    "system design": "system-design",
    "algorithms": "algorithms",
    "data structures": "data-structures",
    "communication": "communication",
    "coding": "coding",
    "architecture": "architecture",
    "testing": "testing",
    "debugging": "debugging",
    "concurrency": "concurrency",
    "database": "database",
    "sql": "sql",
    "api design": "api-design",
    "behavioral": "behavioral",
    "leadership": "leadership",
    "problem solving": "problem-solving",
    "scalability": "scalability",
    "security": "security",
    "performance": "performance",
    "cloud": "cloud",
    "devops": "devops",
    "ci/cd": "ci-cd",
}


def tag(name: str) -> str:
    """Canonical weak-area tag: lowercase, words joined by hyphens."""
    return re.sub(r"[\s_]+", "-", (name or "").strip().lower())


def label(area: str) -> str:
    return " ".join(w.capitalize() for w in area.split("-"))


def _pass_rate(outcomes: list[InterviewOutcome]) -> float:
    if not outcomes:
        return 0.0
    return 100.0 * sum(1 for o in outcomes if o.passed) / len(outcomes)


class FeedbackAnalyzer:
    """Derives aggregates from the outcome log on every call.

    Rates are percentages. The profile is only read, never changed:
    priority adjustments are proposals for the operator.
    """

    def __init__(self, profile: Profile | None = None, settings: Settings | None = None) -> None:
        self.profile = profile
        self.settings = settings or Settings()

    def analyze(
        self,
        outcomes: Iterable[InterviewOutcome],
        existing_tasks: Iterable[PrepAction | str] = (),
    ) -> FeedbackAnalysis:
        ordered = sorted(outcomes, key=lambda o: o.occurred_at)
        n = len(ordered)
        if n < MIN_OUTCOMES:
            raise InsufficientDataError(
                f"Need at least {MIN_OUTCOMES} outcomes to analyze, got {n}",
                available=n,
                required=MIN_OUTCOMES,
            )

        by_round: dict[str, list[InterviewOutcome]] = defaultdict(list)
        for o in ordered:
            by_round[o.round_type.strip().lower()].append(o)
        pass_rate_by_round = {r: round(_pass_rate(group), 2) for r, group in sorted(by_round.items())}
        overall = round(_pass_rate(ordered), 2)

        trend = self._trend(ordered)
        failed = [o for o in ordered if not o.passed]
        weaknesses = self._repeating_weaknesses(failed)
        adjustments = self._priority_adjustments(weaknesses)
        tasks = self._prep_tasks(weaknesses, existing_tasks)
        reasons = self._top_rejection_reasons(failed)

        analysis = FeedbackAnalysis(
            total_outcomes=n,
            overall_pass_rate=overall,
            pass_rate_by_round=pass_rate_by_round,
            trend=trend,
            repeating_weaknesses=weaknesses,
            priority_adjustments=adjustments,
            new_prep_tasks=tasks,
            top_rejection_reasons=reasons,
        )
        analysis.summary = self._summary(analysis)
        log.info(
            "Feedback analysis: %d outcomes, %.0f%% pass, %s, %d repeating weaknesses",
            n, overall, trend, len(weaknesses),
        )
        return analysis

    @staticmethod
    def _trend(ordered: list[InterviewOutcome]) -> str:
        third = max(1, len(ordered) // 3)
        delta = _pass_rate(ordered[-third:]) - _pass_rate(ordered[:third])
        if delta > TREND_DELTA:
            return "Improving"
        if delta < -TREND_DELTA:
            return "Declining"
        return "Stable"

    @staticmethod
    def _areas(outcome: InterviewOutcome) -> set[str]:
        areas = {tag(a) for a in outcome.weak_areas if a.strip()}
        reason = (outcome.rejection_reason or "").lower()
        areas.update(t for kw, t in WEAK_AREA_KEYWORDS.items() if kw in reason)
        return areas

    def _repeating_weaknesses(self, failed: list[InterviewOutcome]) -> list[tuple[str, int]]:
        # each failed outcome counts an area at most once
        counts: Counter[str] = Counter()
        for o in failed:
            counts.update(self._areas(o))
        repeating = [(a, c) for a, c in counts.items() if c >= REPEAT_THRESHOLD]
        return sorted(repeating, key=lambda ac: (-ac[1], ac[0]))

    def _known_skill(self, area: str) -> str | None:
        if self.profile is not None:
            for skill in self.profile.skills:
                if tag(skill) == area:
                    return skill
        for alias, skill in self.settings.skill_aliases.items():
            if tag(alias) == area or tag(skill) == area:
                return skill
        return None

    def _priority_adjustments(self, weaknesses: list[tuple[str, int]]) -> list[tuple[str, float]]:
        s = self.settings
        adjustments: list[tuple[str, float]] = []
        for area, count in weaknesses:
            skill = self._known_skill(area)
            if skill is None:
                continue
            boost = min(s.boost_per_failure * count, s.max_priority_boost)
            adjustments.append((skill, round(boost, 4)))
        return adjustments

    @staticmethod
    def _prep_tasks(
        weaknesses: list[tuple[str, int]],
        existing_tasks: Iterable[PrepAction | str],
    ) -> list[PrepAction]:
        existing = list(existing_tasks)
        covered = {tag(t.area if isinstance(t, PrepAction) else t) for t in existing}
        priority = max((t.priority for t in existing if isinstance(t, PrepAction)), default=0)

        tasks: list[PrepAction] = []
        for area, _count in weaknesses:
            if area in covered:
                continue
            priority += 1
            tasks.append(
                PrepAction(
                    area=area,
                    action=(
                        f"CRITICAL: Address repeating weakness in {label(area)} "
                        "- dedicate focused practice sessions"
                    ),
                    category="Critical Gap",
                    priority=priority,
                    estimated_hours=CRITICAL_HOURS,
                )
            )
        return tasks

    @staticmethod
    def _top_rejection_reasons(failed: list[InterviewOutcome]) -> list[tuple[str, int]]:
        counts: Counter[str] = Counter(
            o.rejection_reason.strip().lower() for o in failed if o.rejection_reason and o.rejection_reason.strip()
        )
        return sorted(counts.items(), key=lambda rc: (-rc[1], rc[0]))[:TOP_REJECTION_REASONS]

    @staticmethod
    def _summary(a: FeedbackAnalysis) -> str:
        parts = [f"{a.total_outcomes} interviews, {a.overall_pass_rate:.0f}% passed, trend {a.trend}."]
        if a.repeating_weaknesses:
            names = ", ".join(f"{label(area)} ({count}x)" for area, count in a.repeating_weaknesses)
            parts.append(
                f"ALERT: {len(a.repeating_weaknesses)} repeating weakness(es) detected: {names}."
            )
        if a.priority_adjustments:
            top = ", ".join(f"{skill} (+{boost:.1f})" for skill, boost in a.priority_adjustments[:3])
            parts.append(f"Suggested priority adjustments: {top}.")
        if a.top_rejection_reasons:
            parts.append(f"Most common rejection: {a.top_rejection_reasons[0][0]}.")
        return " ".join(parts)
