"""Score and rank vacancies against the user's profile."""
from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import replace
from typing import Callable, Iterable

from careerpilot.config import Settings
from careerpilot.errors import ConfigurationError
from careerpilot.log import get_logger
from careerpilot.models import (
    MatchScore,
    Profile,
    RecommendedAction,
    RemotePolicy,
    Seniority,
    Vacancy,
)

log = get_logger(__name__)

APPLY_THRESHOLD = 75.0
PREPARE_THRESHOLD = 55.0
APPLY_MAX_MISSING = 1

SCORE_CACHE_LIMIT = 2048

SENIORITY_SCORES: dict[int, float] = {0: 100.0, 1: 70.0}
SENIORITY_FAR = 30.0

REMOTE_EXACT = 100.0
REMOTE_PARTIAL = 60.0
REMOTE_MISMATCH = 20.0

_OPPOSITE_POLICIES = {
    frozenset({RemotePolicy.REMOTE, RemotePolicy.ONSITE}),
}


def _normalize(s: str) -> str:
    return (s or "").lower().strip()


class MatchEngine:
    """Computes MatchScores from an immutable, swappable profile snapshot.

    Every compute reads the current snapshot once, so a concurrent reload is
    observed either entirely or not at all.
    """

    def __init__(
        self,
        profile: Profile,
        settings: Settings | None = None,
        loader: Callable[[], Profile] | None = None,
        cache_limit: int = SCORE_CACHE_LIMIT,
    ) -> None:
        self.settings = settings or Settings()
        self._loader = loader
        self._lock = threading.Lock()
        self._cache: OrderedDict[tuple, MatchScore] = OrderedDict()
        self.cache_limit = cache_limit
        self._profile = replace(profile.validate(), version=1)

    @property
    def profile(self) -> Profile:
        with self._lock:
            return self._profile

    # ── Profile reload ──────────────────────────────────────────────────

    def reload_profile(self, profile: Profile | None = None) -> Profile:
        """Publish a new profile snapshot and drop every cached score.

        With no argument the configured loader is asked for a fresh profile.
        An invalid profile raises ConfigurationError and the current one stays.
        """
        if profile is None:
            if self._loader is None:
                raise ConfigurationError("No profile given and no loader configured")
            profile = self._loader()
        profile.validate()
        with self._lock:
            self._profile = replace(profile, version=self._profile.version + 1)
            self._cache.clear()
            published = self._profile
        log.info("Profile reloaded → version %d (%d skills)", published.version, len(published.skills))
        return published

    # ── Scoring ─────────────────────────────────────────────────────────

    def compute_match(self, vacancy: Vacancy) -> MatchScore:
        profile = self.profile
        cache_key = (
            profile.version, vacancy.key, vacancy.required_skills, vacancy.salary_min,
            vacancy.salary_max, vacancy.currency, vacancy.seniority, vacancy.remote_policy,
        )
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._cache.move_to_end(cache_key)
        if cached is not None:
            return cached

        score = self._score(vacancy, profile)
        with self._lock:
            if self._profile.version == profile.version:
                self._cache[cache_key] = score
                # least recently used first
                while len(self._cache) > self.cache_limit:
                    self._cache.popitem(last=False)
        return score

    def _canon(self, skill: str) -> str:
        name = _normalize(skill)
        return self.settings.skill_aliases.get(name, name)

    def _score(self, vacancy: Vacancy, profile: Profile) -> MatchScore:
        s = self.settings
        reasons: list[str] = []

        # --- Skills ---
        have = {self._canon(k): w for k, w in profile.skills.items()}
        required = sorted({self._canon(k) for k in vacancy.required_skills})
        matching = tuple(k for k in required if k in have)
        missing = tuple(k for k in required if k not in have)
        if not required:
            skill_score = 100.0
            reasons.append("Skills: no recognized requirements")
        else:
            got = sum(have[k] for k in matching)
            total = got + s.missing_skill_weight * len(missing)
            skill_score = 100.0 * got / total if total else 100.0
            reasons.append(f"Skills: {len(matching)}/{len(required)} required skills matched")

        # --- Salary ---
        salary_score, why = self._salary_score(vacancy, profile)
        reasons.append(f"Salary: {why}")

        # --- Seniority ---
        if Seniority.UNKNOWN in (vacancy.seniority, profile.seniority):
            seniority_score = s.neutral_fit_score
            reasons.append("Seniority: unknown (neutral)")
        else:
            diff = abs(int(vacancy.seniority) - int(profile.seniority))
            seniority_score = SENIORITY_SCORES.get(diff, SENIORITY_FAR)
            reasons.append(f"Seniority: {vacancy.seniority.name.title()} vs {profile.seniority.name.title()}")

        # --- Remote policy ---
        remote_score = self._remote_score(vacancy.remote_policy, profile.remote_policy)
        reasons.append(f"Remote: {vacancy.remote_policy.value} vs preferred {profile.remote_policy.value}")

        w = profile.weights
        overall = (
            w.skills * skill_score
            + w.salary * salary_score
            + w.seniority * seniority_score
            + w.remote * remote_score
        )
        overall = round(min(max(overall, 0.0), 100.0), 2)

        return MatchScore(
            overall=overall,
            skill_score=round(skill_score, 2),
            salary_score=round(salary_score, 2),
            seniority_score=seniority_score,
            remote_score=remote_score,
            matching_skills=matching,
            missing_skills=missing,
            action=self._action(overall, len(missing), profile.gap_tolerance),
            reasons=tuple(reasons),
            confidence=self._confidence(vacancy, profile),
            profile_version=profile.version,
        )

    def _salary_score(self, vacancy: Vacancy, profile: Profile) -> tuple[float, str]:
        neutral = self.settings.neutral_salary_score
        if not vacancy.has_salary:
            return neutral, "not listed (neutral)"
        if not profile.salary_target:
            return neutral, "no target set (neutral)"
        if vacancy.currency.upper() != profile.currency.upper():
            return neutral, f"{vacancy.currency} not comparable to {profile.currency} (neutral)"

        lo = vacancy.salary_min if vacancy.salary_min is not None else vacancy.salary_max
        hi = vacancy.salary_max if vacancy.salary_max is not None else vacancy.salary_min
        target = profile.salary_target
        if hi >= target:
            return 100.0, "meets target"

        midpoint = (lo + hi) / 2
        gap = (target - midpoint) / target
        score = max(0.0, 100.0 * (1 - gap / self.settings.salary_tolerance_pct))
        return score, f"{gap:.0%} below target"

    def _remote_score(self, vacancy_policy: RemotePolicy, preferred: RemotePolicy) -> float:
        if RemotePolicy.UNKNOWN in (vacancy_policy, preferred):
            return self.settings.neutral_fit_score
        if vacancy_policy == preferred:
            return REMOTE_EXACT
        if frozenset({vacancy_policy, preferred}) in _OPPOSITE_POLICIES:
            return REMOTE_MISMATCH
        return REMOTE_PARTIAL

    @staticmethod
    def _action(overall: float, missing: int, gap_tolerance: int) -> RecommendedAction:
        if overall >= APPLY_THRESHOLD and missing <= APPLY_MAX_MISSING:
            return RecommendedAction.APPLY
        if overall >= PREPARE_THRESHOLD:
            return RecommendedAction.PREPARE_AND_APPLY
        if missing >= gap_tolerance:
            return RecommendedAction.SKILL_GAP_TOO_LARGE
        return RecommendedAction.SKIP

    @staticmethod
    def _confidence(vacancy: Vacancy, profile: Profile) -> float:
        confidence = 1.0
        if not vacancy.required_skills:
            confidence -= 0.3
        if not vacancy.has_salary:
            confidence -= 0.15
        if vacancy.seniority == Seniority.UNKNOWN:
            confidence -= 0.15
        if vacancy.remote_policy == RemotePolicy.UNKNOWN:
            confidence -= 0.1
        if len(profile.skills) < 3:
            confidence -= 0.2
        return round(min(max(confidence, 0.1), 1.0), 2)

    # ── Ranking ─────────────────────────────────────────────────────────

    def is_blacklisted(self, vacancy: Vacancy, profile: Profile | None = None) -> bool:
        profile = profile or self.profile
        if _normalize(vacancy.company) in profile.blacklisted_companies:
            return True
        text = _normalize(vacancy.title) + " " + _normalize(vacancy.description)
        return any(kw in text for kw in profile.blacklisted_keywords)

    def rank_vacancies(self, vacancies: Iterable[Vacancy], minimum_score: float = 0.0) -> list[Vacancy]:
        """Scored copies above ``minimum_score``, best first.

        Ties on overall score go to the more recent posting (undated last),
        then to the title alphabetically, then to (platform, url).
        """
        profile = self.profile
        batch = list(vacancies)
        scored: list[Vacancy] = []
        blocked = 0
        for v in batch:
            if self.is_blacklisted(v, profile):
                blocked += 1
                continue
            score = self.compute_match(v)
            if score.overall >= minimum_score:
                scored.append(v.with_score(score))

        scored.sort(key=_rank_key)
        log.info(
            "Scored %d vacancies → %d at or above %.0f (blacklisted: %d)",
            len(batch), len(scored), minimum_score, blocked,
        )
        return scored


def _rank_key(v: Vacancy) -> tuple:
    posted = v.posted_at.timestamp() if v.posted_at else 0.0
    return (
        -v.match_score.overall,
        v.posted_at is None,
        -posted,
        v.title.lower(),
        v.key,
    )
