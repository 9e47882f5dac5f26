from __future__ import annotations

# The override helper is pure (no network, no files), so it is tested directly.
import pytest

# Real default config structure, loaded from the packaged YAML.
from safetyscore.config.settings import get_settings

from safetyscore.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    # No overrides means a no-op: the same cached object comes back.
    assert apply_settings_overrides(settings, None) is settings
    assert apply_settings_overrides(settings, {}) is settings


def test_apply_settings_overrides_can_override_scoring_knobs():
    # Baseline settings are shared via lru_cache; never mutate them.
    settings = get_settings()

    overrides = {"scoring": {"mix_counts": 0.5, "decay_m": {"shelter": 250}}}
    out = apply_settings_overrides(settings, overrides)

    assert out.scoring.mix_counts == 0.5
    assert out.scoring.decay_m.shelter == 250
    # Sibling values survive the deep merge.
    assert out.scoring.decay_m.school == settings.scoring.decay_m.school

    # The shared settings stay untouched (no cross-request leakage).
    assert settings.scoring.mix_counts == 0.8
    assert settings.scoring.decay_m.shelter == 500


def test_apply_settings_overrides_allows_fallback_query_budget_only():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"ingestion": {"overpass": {"query_timeout_seconds": 10}}})
    assert out.ingestion.overpass.query_timeout_seconds == 10

    # The endpoint URL is not a tuning knob; the dotted path points at the offending key.
    with pytest.raises(ValueError, match=r"ingestion\.overpass\.base_url"):
        apply_settings_overrides(settings, {"ingestion": {"overpass": {"base_url": "http://example.invalid"}}})


def test_apply_settings_overrides_rejects_catalog_paths():
    settings = get_settings()

    # Catalog file locations could enable arbitrary file reads.
    with pytest.raises(ValueError, match=r"disallowed key: 'catalog'"):
        apply_settings_overrides(settings, {"catalog": {"data_dir": "/etc"}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    # `ingestion` only allows certain nested keys, so its override must be a mapping.
    with pytest.raises(ValueError, match=r"settings_overrides key 'ingestion' must be a mapping"):
        apply_settings_overrides(settings, {"ingestion": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    # Allowed key, invalid value: Pydantic rejects it on re-validation.
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"scoring": {"mix_counts": 1.5}})
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"scoring": {"count_curve": "cubic"}})
