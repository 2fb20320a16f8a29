"""
Tests for RegionRouter.
"""

import pytest

from src.domain.shared.exceptions import UnsupportedRegionError
from src.infrastructure.remote import RegionRouter


def test_resolve_known_region(region_router):
    endpoint = region_router.resolve("china")

    assert endpoint.region == "china"
    assert endpoint.base_url == "https://www.runninghub.cn"
    assert endpoint.api_key == "key-cn"
    assert endpoint.host == "www.runninghub.cn"


@pytest.mark.parametrize("region", [None, "", "   "])
def test_empty_region_uses_default(region_router, region):
    assert region_router.resolve(region).region == "hongkong"


def test_region_codes_are_case_insensitive(region_router):
    assert region_router.resolve(" HongKong ").api_key == "key-hk"


def test_unknown_region_is_rejected(region_router):
    with pytest.raises(UnsupportedRegionError) as exc_info:
        region_router.resolve("mars")

    assert exc_info.value.region == "mars"
    assert exc_info.value.supported == ["china", "hongkong"]


def test_api_key_is_hidden_from_repr(region_router):
    assert "key-cn" not in repr(region_router.resolve("china"))


def test_trailing_slash_is_stripped():
    router = RegionRouter({"china": "https://proxy.local/"}, {"china": "k"}, default_region="china")

    assert router.resolve(None).base_url == "https://proxy.local"


def test_from_env(monkeypatch):
    monkeypatch.setenv("RUNNINGHUB_API_KEY", "shared")
    monkeypatch.setenv("RUNNINGHUB_API_KEY_CHINA", "cn-only")
    monkeypatch.setenv("RUNNINGHUB_BASE_URL_HONGKONG", "https://staging.runninghub.ai")
    monkeypatch.setenv("DEFAULT_REGION", "CHINA")

    router = RegionRouter.from_env()

    assert router.regions == ["china", "hongkong"]
    assert router.resolve(None).api_key == "cn-only"
    hongkong = router.resolve("hongkong")
    assert hongkong.api_key == "shared"
    assert hongkong.base_url == "https://staging.runninghub.ai"
