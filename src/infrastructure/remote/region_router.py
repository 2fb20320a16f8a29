"""
Region Router

Selects the physical endpoint and credentials for a submission.

Responsibility:
    - Static region table (mainland China vs Hong Kong endpoints)
    - Per-region API key and base URL overrides from environment
    - Reject unknown region codes

Architecture Notes:
    - Infrastructure Layer (remote service configuration)
    - Pure configuration lookup: no I/O, no retries

Configuration:
    RUNNINGHUB_API_KEY             key shared by every region
    RUNNINGHUB_API_KEY_<REGION>    region-specific key (wins over the shared one)
    RUNNINGHUB_BASE_URL_<REGION>   region-specific base URL override
    DEFAULT_REGION                 region used when a request names none

Examples:
    >>> router = RegionRouter.from_env()
    >>> endpoint = router.resolve("china")
    >>> endpoint.base_url
    'https://www.runninghub.cn'
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Final, Mapping, Optional
from urllib.parse import urlparse

from src.domain.shared.exceptions import UnsupportedRegionError

logger = logging.getLogger(__name__)

REGION_CHINA: Final[str] = "china"
REGION_HONGKONG: Final[str] = "hongkong"
DEFAULT_REGION: Final[str] = REGION_HONGKONG

DEFAULT_BASE_URLS: Final[Mapping[str, str]] = {
    REGION_CHINA: "https://www.runninghub.cn",
    REGION_HONGKONG: "https://www.runninghub.ai",
}


@dataclass(frozen=True)
class RegionEndpoint:
    """
    Resolved endpoint for one region.

    Attributes:
        region: Normalised region code
        base_url: Scheme + host, no trailing slash
        api_key: Credential sent in every request body
    """

    region: str
    base_url: str
    api_key: str = field(repr=False)

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc


class RegionRouter:
    """
    Stateless lookup from region code to RegionEndpoint.

    Args:
        base_urls: region -> base URL
        api_keys: region -> API key
        default_region: Region used for empty region codes
    """

    def __init__(
        self,
        base_urls: Mapping[str, str],
        api_keys: Mapping[str, str],
        default_region: str = DEFAULT_REGION,
    ) -> None:
        self._base_urls = {region.lower(): url.rstrip("/") for region, url in base_urls.items()}
        self._api_keys = {region.lower(): key for region, key in api_keys.items()}
        self.default_region = default_region.lower()

    @classmethod
    def from_env(cls) -> "RegionRouter":
        """Build the router from DEFAULT_BASE_URLS and environment overrides."""
        shared_key = os.getenv("RUNNINGHUB_API_KEY", "")
        base_urls: dict[str, str] = {}
        api_keys: dict[str, str] = {}

        for region, default_url in DEFAULT_BASE_URLS.items():
            suffix = region.upper()
            base_urls[region] = os.getenv(f"RUNNINGHUB_BASE_URL_{suffix}", default_url)
            api_keys[region] = os.getenv(f"RUNNINGHUB_API_KEY_{suffix}", shared_key)
            if not api_keys[region]:
                logger.warning(f"No API key configured for region '{region}'")

        return cls(
            base_urls=base_urls,
            api_keys=api_keys,
            default_region=os.getenv("DEFAULT_REGION", DEFAULT_REGION),
        )

    @property
    def regions(self) -> list[str]:
        return sorted(self._base_urls)

    def normalize(self, region: Optional[str]) -> str:
        """Lower-case and default an incoming region code."""
        if region is None or not str(region).strip():
            return self.default_region
        return str(region).strip().lower()

    def resolve(self, region: Optional[str]) -> RegionEndpoint:
        """
        Resolve a region code.

        Raises:
            UnsupportedRegionError: If the region is not configured
        """
        code = self.normalize(region)
        base_url = self._base_urls.get(code)
        if base_url is None:
            raise UnsupportedRegionError(str(region), supported=self.regions)

        return RegionEndpoint(
            region=code,
            base_url=base_url,
            api_key=self._api_keys.get(code, ""),
        )
