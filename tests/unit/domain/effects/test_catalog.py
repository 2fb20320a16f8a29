"""
Tests for EffectCatalog and CatalogRegistry.
Covers: lookup, duplicate ids, atomic snapshot swap, content fingerprint.
"""

from dataclasses import replace

import pytest

from src.domain.effects import CatalogRegistry, EffectCatalog
from src.domain.shared.exceptions import CatalogValidationError, UnknownEffectError


def test_get_returns_definition(bg_replace, flux_kontext):
    catalog = EffectCatalog.from_definitions([bg_replace, flux_kontext])

    assert catalog.get("bg-replace") is bg_replace
    assert "flux-kontext" in catalog
    assert len(catalog) == 2
    assert catalog.ids() == ["bg-replace", "flux-kontext"]


def test_get_unknown_effect_raises():
    catalog = EffectCatalog.from_definitions([])

    with pytest.raises(UnknownEffectError) as exc_info:
        catalog.get("nope")

    assert exc_info.value.catalog_id == "nope"


def test_duplicate_catalog_id_is_rejected(bg_replace):
    with pytest.raises(CatalogValidationError, match="Duplicate effect"):
        EffectCatalog.from_definitions([bg_replace, bg_replace])


def test_snapshot_is_read_only(bg_replace):
    catalog = EffectCatalog.from_definitions([bg_replace])

    with pytest.raises(TypeError):
        catalog.effects["other"] = bg_replace


def test_swap_installs_new_snapshot_and_bumps_version(bg_replace, flux_kontext):
    registry = CatalogRegistry()
    first = registry.swap([bg_replace], source="first.json")

    second = registry.swap([bg_replace, flux_kontext], source="second.json")

    assert second.version == first.version + 1
    assert registry.current() is second
    assert second.source == "second.json"
    # Snapshots already handed out never change
    assert "flux-kontext" not in first


def test_failed_swap_keeps_previous_snapshot(bg_replace):
    registry = CatalogRegistry()
    current = registry.swap([bg_replace])

    with pytest.raises(CatalogValidationError):
        registry.swap([bg_replace, bg_replace])

    assert registry.current() is current


def test_fingerprint_depends_on_content_not_version(bg_replace, flux_kontext):
    one_process = CatalogRegistry()
    one_process.swap([bg_replace])
    one_process.swap([bg_replace, flux_kontext])
    other_process = CatalogRegistry()
    other_process.swap([flux_kontext, bg_replace])

    assert one_process.current().version != other_process.current().version
    assert one_process.current().fingerprint == other_process.current().fingerprint


def test_fingerprint_changes_with_a_definition(bg_replace):
    before = EffectCatalog.from_definitions([bg_replace])
    after = EffectCatalog.from_definitions([replace(bg_replace, instance_type="plus")])

    assert before.fingerprint != after.fingerprint
