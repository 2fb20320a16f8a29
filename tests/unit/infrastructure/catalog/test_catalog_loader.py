"""
Tests for EffectCatalogLoader.
Covers: bundled catalog, path resolution, error aggregation, failed reload keeps snapshot.
"""

import json

import pytest

from src.domain.effects import CatalogRegistry
from src.domain.shared.exceptions import CatalogValidationError
from src.infrastructure.catalog import EffectCatalogLoader
from src.infrastructure.catalog.catalog_loader import (
    DEFAULT_CATALOG_PATH,
    parse_catalog,
    resolve_catalog_path,
)


def _entry(catalog_id="demo", **overrides):
    entry = {
        "catalogId": catalog_id,
        "submissionMode": "app",
        "externalWorkflowId": "1937084629516193794",
        "parameterSpecs": [{"key": "image", "kind": "image"}],
        "nodeBindings": [{"nodeId": "39", "fieldName": "image", "paramKey": "image"}],
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "effects.json"
    path.write_text(json.dumps({"version": 1, "effects": [_entry()]}), encoding="utf-8")
    return path


# ============================================================================
# LOADING
# ============================================================================


def test_bundled_catalog_loads():
    definitions = EffectCatalogLoader(DEFAULT_CATALOG_PATH).load()

    assert [d.catalog_id for d in definitions] == ["bg-replace", "flux-kontext", "portrait-upscale"]


def test_load_from_file(catalog_file):
    definitions = EffectCatalogLoader(catalog_file).load()

    assert len(definitions) == 1
    assert definitions[0].catalog_id == "demo"


def test_resolve_catalog_path(monkeypatch, tmp_path):
    monkeypatch.delenv("EFFECT_CATALOG_PATH", raising=False)
    assert resolve_catalog_path() == DEFAULT_CATALOG_PATH

    monkeypatch.setenv("EFFECT_CATALOG_PATH", str(tmp_path / "env.json"))
    assert resolve_catalog_path() == tmp_path / "env.json"
    assert resolve_catalog_path(tmp_path / "explicit.json") == tmp_path / "explicit.json"


def test_missing_file(tmp_path):
    with pytest.raises(CatalogValidationError, match="Cannot read effect catalog"):
        EffectCatalogLoader(tmp_path / "nope.json").load()


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{effects: [", encoding="utf-8")

    with pytest.raises(CatalogValidationError, match="not valid JSON"):
        EffectCatalogLoader(path).load()


# ============================================================================
# VALIDATION
# ============================================================================


@pytest.mark.parametrize("document", [[], {"effects": {}}, {"version": 1}])
def test_document_shape_is_checked(document):
    with pytest.raises(CatalogValidationError, match="'effects' list"):
        parse_catalog(document)


def test_unsupported_version():
    with pytest.raises(CatalogValidationError, match="format version"):
        parse_catalog({"version": 2, "effects": []})


def test_errors_from_every_entry_are_reported_together():
    document = {
        "effects": [
            _entry("ok"),
            "not an object",
            _entry("ok"),
            _entry("bad-binding", nodeBindings=[{"nodeId": "1", "fieldName": "x", "paramKey": "missing"}]),
        ]
    }

    with pytest.raises(CatalogValidationError) as exc_info:
        parse_catalog(document)

    errors = exc_info.value.errors
    assert len(errors) == 3
    assert errors[0] == "effects[1]: expected an object"
    assert errors[1] == "ok: duplicate catalogId"
    assert errors[2].startswith("bad-binding:")


# ============================================================================
# RELOAD
# ============================================================================


def test_reload_swaps_snapshot(catalog_file):
    registry = CatalogRegistry()

    catalog = EffectCatalogLoader(catalog_file).reload(registry)

    assert registry.current() is catalog
    assert catalog.ids() == ["demo"]
    assert catalog.source == str(catalog_file)


def test_failed_reload_keeps_previous_snapshot(catalog_file):
    registry = CatalogRegistry()
    loader = EffectCatalogLoader(catalog_file)
    previous = loader.reload(registry)

    catalog_file.write_text(json.dumps({"effects": [_entry(submissionMode="batch")]}), encoding="utf-8")

    with pytest.raises(CatalogValidationError):
        loader.reload(registry)

    assert registry.current() is previous
