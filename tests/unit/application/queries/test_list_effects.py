"""
Tests for ListEffectsQueryHandler.
"""

import pytest

from src.application.queries.list_effects import EffectSummary, ListEffectsQueryHandler


@pytest.mark.asyncio
async def test_lists_every_effect_in_catalog_order(catalog_registry):
    result = await ListEffectsQueryHandler(catalog_registry).handle()

    assert result.version == catalog_registry.current().version
    assert [e.catalog_id for e in result.effects] == ["bg-replace", "flux-kontext", "portrait-upscale"]


def test_summary_exposes_parameters_but_not_bindings(bg_replace):
    summary = EffectSummary.from_definition(bg_replace)

    assert summary.submission_mode == "graph"
    assert summary.required == ["image_240", "prompt_279"]
    assert [p["key"] for p in summary.parameters] == ["image_240", "image_284", "prompt_279", "select_351"]
    assert "nodeBindings" not in summary.model_dump()
    assert "1949831786093264897" not in summary.model_dump_json()


def test_summary_of_app_effect(flux_kontext):
    summary = EffectSummary.from_definition(flux_kontext)

    assert summary.submission_mode == "app"
    assert summary.required == ["image"]
