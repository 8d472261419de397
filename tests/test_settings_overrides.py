from __future__ import annotations

import pytest

from buffersearch.config.overrides import apply_settings_overrides
from buffersearch.config.settings import get_settings
from buffersearch.domain.models import ActivationConfig


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    # Identity is intentional: the helper returns early without rebuilding the model.
    assert apply_settings_overrides(settings, None) is settings


def test_apply_settings_overrides_can_override_buffer_defaults():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"buffer": {"default_distance": 1234, "default_unit": "kilometers"}})

    assert out.buffer.default_distance == 1234
    assert out.buffer.default_unit == "kilometers"
    # The cached settings object is shared and must not change.
    assert settings.buffer.default_distance != 1234


def test_apply_settings_overrides_rejects_backend_url_with_clear_path():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"backend\.base_url"):
        apply_settings_overrides(settings, {"backend": {"base_url": "http://evil.test"}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"settings_overrides key 'layer' must be a mapping"):
        apply_settings_overrides(settings, {"layer": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"buffer": {"segments": 2}})


def test_activation_config_is_built_from_settings_and_frozen():
    settings = get_settings()

    config = ActivationConfig.from_settings(settings, distance=2, unit="kilometers", map_crs=None)

    assert config.layer.id == settings.layer.id
    assert config.distance == 2
    assert config.unit == "kilometers"
    assert config.map_crs == settings.map.crs
    with pytest.raises(ValueError):
        config.distance = 5
