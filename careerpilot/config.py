"""Load profile, settings and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from careerpilot.errors import ConfigurationError
from careerpilot.log import get_logger
from careerpilot.models import OfferWeights, Profile, RemotePolicy, ScoringWeights, Seniority

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
PROFILE_PATH: Path = CONFIG_DIR / "profile.yaml"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = Path(os.environ.get("CAREERPILOT_DATA_DIR", ROOT_DIR / "data"))

DEFAULT_GROWTH_STAGE_WEIGHTS: dict[str, float] = {
    "seed": 3.0,
    "series_a": 2.5,
    "series_b": 2.0,
    "growth": 1.5,
    "public": 1.0,
    "enterprise": 0.5,
}


@dataclass
class Settings:
    """Named, overridable options for scoring, analysis and delivery."""

    salary_tolerance_pct: float = 0.30
    gap_tolerance_count: int = 3
    max_chunk_size: int = 4096
    uplift_below: float = 0.12
    uplift_at: float = 0.08
    uplift_above: float = 0.04
    neutral_salary_score: float = 60.0
    neutral_fit_score: float = 50.0
    missing_skill_weight: float = 1.0
    equity_discount: float = 0.25
    growth_stage_weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_GROWTH_STAGE_WEIGHTS))
    skill_aliases: dict[str, str] = field(default_factory=dict)
    boost_per_failure: float = 0.1
    max_priority_boost: float = 0.5
    min_notify_score: float = 60.0
    scrape_keywords: list[str] = field(default_factory=lambda: ["python developer"])
    scrape_max_pages: int = 2
    platforms: list[str] = field(default_factory=list)
    interval_hours: float = 24.0

    def validate(self) -> "Settings":
        if not 0 < self.salary_tolerance_pct <= 1:
            raise ConfigurationError("salary_tolerance_pct must lie in (0, 1]")
        if self.max_chunk_size < 1:
            raise ConfigurationError("max_chunk_size must be positive")
        if not 0 <= self.equity_discount < 1:
            raise ConfigurationError("equity_discount must lie in [0, 1)")
        for name in ("neutral_salary_score", "neutral_fit_score", "min_notify_score"):
            if not 0 <= getattr(self, name) <= 100:
                raise ConfigurationError(f"{name} must lie in [0, 100]")
        if self.missing_skill_weight <= 0:
            raise ConfigurationError("missing_skill_weight must be positive")
        return self


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    for d in (CONFIG_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed YAML in {path.name}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the top level")
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Defaults overlaid with ``config/settings.yaml`` when it exists."""
    path = path or SETTINGS_PATH
    settings = Settings()
    if not path.exists():
        log.debug("No %s, using default settings", path.name)
        return settings

    data = _read_yaml(path)
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        log.warning("Ignoring unknown settings: %s", ", ".join(unknown))
    for key in known & set(data):
        setattr(settings, key, data[key])
    if "skill_aliases" in data:
        settings.skill_aliases = {
            _norm(k): _norm(v) for k, v in (data["skill_aliases"] or {}).items()
        }
    return settings.validate()


def _norm(name: Any) -> str:
    return str(name).strip().lower()


def _names(values: Any) -> frozenset[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(_norm(v) for v in values)


def _optional_float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None


def _int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def parse_profile(data: dict[str, Any], settings: Settings | None = None) -> Profile:
    """Build a validated Profile from its YAML mapping.

    ``skills`` may be a mapping of name to weight or a plain list (weight 1.0).
    """
    settings = settings or Settings()
    raw_skills = data.get("skills") or {}
    if isinstance(raw_skills, list):
        raw_skills = {name: 1.0 for name in raw_skills}
    if not isinstance(raw_skills, dict):
        raise ConfigurationError("profile.skills must be a mapping or a list")
    try:
        skills = {_norm(k): float(v) for k, v in raw_skills.items()}
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid skill weight: {exc}") from exc

    salary = data.get("salary") or {}
    if not isinstance(salary, dict):
        raise ConfigurationError("profile.salary must be a mapping")
    weights_raw = data.get("weights") or {}
    try:
        weights = ScoringWeights(**{k: float(v) for k, v in weights_raw.items()})
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid scoring weights: {exc}") from exc

    offer_weights = None
    if data.get("offer_weights"):
        try:
            offer_weights = OfferWeights(**{k: float(v) for k, v in data["offer_weights"].items()})
        except (TypeError, ValueError, AttributeError) as exc:
            raise ConfigurationError(f"Invalid offer weights: {exc}") from exc

    profile = Profile(
        name=str(data.get("name", "")),
        skills=skills,
        salary_target=_optional_float(salary, "target"),
        salary_floor=_optional_float(salary, "floor"),
        currency=str(salary.get("currency", "USD")).upper(),
        seniority=Seniority.parse(data.get("seniority")),
        remote_policy=RemotePolicy.parse(data.get("remote_policy", "remote")),
        blacklisted_companies=_names(data.get("blacklisted_companies")),
        blacklisted_keywords=_names(data.get("blacklisted_keywords")),
        weights=weights,
        gap_tolerance=_int(data, "gap_tolerance", settings.gap_tolerance_count),
        preferred_stack=_names(data.get("preferred_stack")),
        learning_goals=_names(data.get("learning_goals")),
        offer_weights=offer_weights,
    )
    return profile.validate()


def load_profile(path: Path | None = None, settings: Settings | None = None) -> Profile:
    path = path or PROFILE_PATH
    if not path.exists():
        raise ConfigurationError(f"Profile not found: {path}")
    profile = parse_profile(_read_yaml(path), settings)
    log.info("Loaded profile %s (%d skills)", path.name, len(profile.skills))
    return profile
