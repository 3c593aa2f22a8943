from __future__ import annotations

import pytest

# Use the real Settings loader so tests run against the packaged defaults.yaml.
from beamroute.config.settings import get_settings

# The override helper is pure and decides what a single run may change.
from beamroute.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    out = apply_settings_overrides(settings, None)

    # Identity is intentional: no overrides means no rebuilt model.
    assert out is settings


def test_apply_settings_overrides_can_override_search_knobs():
    # Do not mutate the shared settings; it is cached via lru_cache.
    settings = get_settings()

    out = apply_settings_overrides(settings, {"search": {"beam_width": 7, "workers": 3}})

    assert out.search.beam_width == 7
    assert out.search.workers == 3
    # Untouched siblings keep their defaults.
    assert out.search.max_steps == settings.search.max_steps
    # The cached settings must stay unchanged between runs.
    assert settings.search.beam_width != 7


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # Output paths are deliberately not overridable per run.
    overrides = {"output": {"report_path": "/etc/passwd"}}

    with pytest.raises(ValueError, match=r"output\.report_path"):
        apply_settings_overrides(settings, overrides)


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"settings_overrides key 'output' must be a mapping"):
        apply_settings_overrides(settings, {"output": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"search": {"beam_width": 0}})


def test_env_overrides_are_applied(monkeypatch):
    monkeypatch.setenv("BEAMROUTE_BEAM_WIDTH", "12")
    monkeypatch.setenv("BEAMROUTE_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.search.beam_width == 12
        assert settings.app.log_level == "DEBUG"
    finally:
        monkeypatch.delenv("BEAMROUTE_BEAM_WIDTH")
        monkeypatch.delenv("BEAMROUTE_LOG_LEVEL")
        get_settings.cache_clear()
