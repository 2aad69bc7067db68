"""Profile and settings loading."""
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from careerpilot.config import Settings, load_profile, load_settings, parse_profile
from careerpilot.errors import ConfigurationError
from careerpilot.models import RemotePolicy, Seniority

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def test_parse_profile_full():
    profile = parse_profile({
        "name": "Jane",
        "skills": {"Python": 1, "Django": 0.8},
        "salary": {"target": 140000, "floor": "115000", "currency": "usd"},
        "seniority": "mid",
        "remote_policy": "Remote-Friendly",
        "weights": {"skills": 0.4, "salary": 0.3, "seniority": 0.15, "remote": 0.15},
        "blacklisted_companies": ["Bad Corp"],
        "blacklisted_keywords": "unpaid",
        "preferred_stack": ["Python"],
        "offer_weights": {"comp": 0.5, "growth": 0.25, "stack": 0.25},
    })
    assert profile.skills == {"python": 1.0, "django": 0.8}
    assert (profile.salary_target, profile.salary_floor, profile.currency) == (140_000, 115_000, "USD")
    assert profile.seniority is Seniority.MIDDLE
    assert profile.remote_policy is RemotePolicy.REMOTE_FRIENDLY
    assert profile.weights.skills == 0.4
    assert profile.blacklisted_companies == frozenset({"bad corp"})
    assert profile.blacklisted_keywords == frozenset({"unpaid"})
    assert profile.offer_weights.comp == 0.5
    assert profile.gap_tolerance == 3


def test_skill_list_gets_unit_weights():
    profile = parse_profile({"skills": ["python", "sql"]})
    assert profile.skills == {"python": 1.0, "sql": 1.0}
    assert profile.remote_policy is RemotePolicy.REMOTE
    assert profile.salary_target is None


@pytest.mark.parametrize("data", [
    {"skills": ["python"], "weights": {"skills": 0.5, "salary": 0.5, "seniority": 0.5, "remote": 0.5}},
    {"skills": ["python"], "weights": {"skils": 1.0}},
    {"skills": {"python": -1}},
    {"skills": {"python": "lots"}},
    {"skills": "python"},
    {"skills": ["python"], "seniority": "wizard"},
    {"skills": ["python"], "remote_policy": "moon"},
    {"skills": ["python"], "salary": {"target": "a lot"}},
    {"skills": ["python"], "gap_tolerance": 0},
    {"skills": ["python"], "offer_weights": {"comp": 1.0, "growth": 1.0, "stack": 0.0}},
    {"skills": ["python"], "weights": {"skills": "abc"}},
    {"skills": ["python"], "weights": [0.5, 0.5]},
    {"skills": ["python"], "offer_weights": {"comp": "most"}},
    {"skills": ["python"], "gap_tolerance": "three"},
    {"skills": ["python"], "seniority": 42},
    {"skills": ["python"], "salary": [140000]},
])
def test_invalid_profiles_rejected(data):
    with pytest.raises(ConfigurationError):
        parse_profile(data)


def test_missing_profile_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Profile not found"):
        load_profile(tmp_path / "profile.yaml")


def test_malformed_yaml(tmp_path):
    path = tmp_path / "profile.yaml"
    path.write_text("skills: [python\nseniority: senior\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Malformed YAML"):
        load_profile(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "profile.yaml"
    path.write_text("- python\n- sql\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_profile(path)


def test_settings_overlay(tmp_path, caplog):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "salary_tolerance_pct: 0.2\n"
        "neutral_salary_score: 50\n"
        "skill_aliases:\n  Postgres: PostgreSQL\n"
        "mystery_option: 1\n",
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING):
        settings = load_settings(path)
    assert settings.salary_tolerance_pct == 0.2
    assert settings.neutral_salary_score == 50
    assert settings.skill_aliases == {"postgres": "postgresql"}
    assert settings.max_chunk_size == 4096
    assert "mystery_option" in caplog.text


def test_settings_defaults_when_file_missing(tmp_path):
    assert load_settings(tmp_path / "nope.yaml") == Settings()


def test_invalid_settings_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("salary_tolerance_pct: 0\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_shipped_examples_load():
    settings = load_settings(CONFIG_DIR / "settings.yaml")
    profile = load_profile(CONFIG_DIR / "profile.example.yaml", settings)
    assert "python" in profile.skills
    assert profile.seniority is Seniority.SENIOR
    assert settings.skill_aliases["k8s"] == "kubernetes"
