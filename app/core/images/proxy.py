# app/core/images/proxy.py
"""
IMAGE PROXY - Load protected mockup images from monday.com for the browser

Purpose:
    Board file URLs point at protected storage the browser can't read.
    We try, in order:
        1. GraphQL `assets` query → public_url → GET it
        2. files.monday.com download URL with the API token
        3. The original URL, with bearer token + cookie only for monday.com hosts
    Each call gets its own timeout; a failure just moves on to the next one.
    Whatever works is cached by URL for IMAGE_CACHE_TTL_SECONDS.
"""

import logging
import mimetypes
import re
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from app.core.errors import ImageProxyError, TransportError
from app.core.images.cache import CacheBackend, CachedImage

logger = logging.getLogger(__name__)

RESOURCE_ID_PATTERN = re.compile(r"/resources/(\d+)/")
DEFAULT_CONTENT_TYPE = "image/jpeg"
BROWSER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

ASSET_QUERY = """
query ($ids: [ID!]!) {
  assets(ids: $ids) {
    id
    url
    public_url
  }
}
"""


def log_info(message: str):
    logger.info(f"[MONDAY-PROXY] {message}")


def extract_asset_id(url: str) -> Optional[str]:
    """
    Example:
        ".../resources/123456/mockup.png" → "123456"
    """
    match = RESOURCE_ID_PATTERN.search(url or "")
    return match.group(1) if match else None


def is_monday_host(url: str) -> bool:
    """
    Examples:
        "https://acme.monday.com/protected_static/..." → True
        "https://evil.example/monday.com/x" → False
    """
    try:
        host = (httpx.URL(url).host or "").lower()
    except httpx.InvalidURL:
        return False
    return host == "monday.com" or host.endswith(".monday.com")


def infer_content_type(response: httpx.Response, url: str) -> str:
    header = response.headers.get("content-type")
    if header:
        return header
    guessed, _ = mimetypes.guess_type(url.split("?")[0])
    return guessed or DEFAULT_CONTENT_TYPE


@dataclass
class ImageResult:
    data: bytes
    content_type: str
    source: str
    cached: bool = False
    failures: List[TransportError] = field(default_factory=list)


class ImageProxy:
    def __init__(
        self,
        token: str,
        cache: CacheBackend[CachedImage],
        api_url: str = "https://api.monday.com/v2",
        files_url: str = "https://files.monday.com/file/download",
        timeout: float = 8.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.cache = cache
        self.api_url = api_url
        self.files_url = files_url.rstrip("/")
        self.timeout = timeout
        self.http_client = http_client

    async def fetch(
        self, url: str, asset_id: Optional[str] = None, skip_cache: bool = False
    ) -> ImageResult:
        if not url:
            raise ImageProxyError(400, "Missing image URL")

        if not skip_cache:
            cached = self.cache.get(url)
            if cached is not None:
                log_info(f"Using cached version for: {url[:50]}...")
                return ImageResult(cached.data, cached.content_type, "Cache", cached=True)

        resource_id = asset_id or extract_asset_id(url)
        if not resource_id:
            log_info("Could not extract asset ID")
            raise ImageProxyError(400, "Could not extract asset ID")

        if self.http_client is not None:
            return await self._run_chain(self.http_client, url, resource_id)

        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await self._run_chain(client, url, resource_id)

    async def _run_chain(
        self, client: httpx.AsyncClient, url: str, resource_id: str
    ) -> ImageResult:
        failures: List[TransportError] = []

        # 1 + 2: public URL from the API
        public_url = await self._public_asset_url(client, resource_id, failures)
        if public_url:
            log_info(f"Public URL obtained via API: {public_url}")
            response = await self._get(client, public_url, failures)
            if response is not None and response.is_success:
                return self._store(url, response, public_url, "MondayAPI", failures)
            if response is not None:
                log_info(f"Error loading from public API URL: {response.status_code}")

        # 3: file download endpoint
        download_url = f"{self.files_url}/{resource_id}"
        log_info(f"Trying download URL: {download_url}")
        response = await self._get(
            client,
            download_url,
            failures,
            headers={"Authorization": self.token, "User-Agent": BROWSER_AGENT},
        )
        if response is not None and response.is_success:
            return self._store(url, response, download_url, "FileAPI", failures)

        # 4: the original URL, last resort
        log_info(f"Direct request to URL: {url}")
        headers = {"User-Agent": BROWSER_AGENT, "Accept": "image/*, */*"}
        # The token only goes to monday.com itself
        if is_monday_host(url):
            headers["Authorization"] = f"Bearer {self.token}"
            headers["Cookie"] = f"monday_token={self.token}"
        response = await self._get(client, url, failures, headers=headers)
        if response is None:
            last = failures[-1].message if failures else "unknown error"
            raise ImageProxyError(502, f"Error fetching image: {last}")
        if not response.is_success:
            log_info(f"Error with direct request: {response.status_code}")
            raise ImageProxyError(
                response.status_code, f"Failed to fetch image: {response.status_code}"
            )

        return self._store(url, response, url, "DirectURL", failures)

    async def _public_asset_url(
        self, client: httpx.AsyncClient, resource_id: str, failures: List[TransportError]
    ) -> Optional[str]:
        log_info(f"Executing GraphQL query for asset URL: {resource_id}")
        try:
            response = await client.post(
                self.api_url,
                json={"query": ASSET_QUERY, "variables": {"ids": [resource_id]}},
                headers={"Authorization": self.token, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            failures.append(TransportError(self.api_url, str(e) or type(e).__name__))
            log_info(f"Error getting public URL: {e!r}")
            return None

        if not response.is_success:
            log_info(f"GraphQL API error: {response.status_code}")
            return None

        try:
            body = response.json()
        except ValueError:
            log_info("GraphQL API returned a non-JSON body")
            return None

        if not isinstance(body, dict):
            log_info("GraphQL API returned an unexpected body")
            return None

        if body.get("errors"):
            log_info(f"GraphQL returned errors: {body['errors']}")
            return None

        data = body.get("data")
        assets = data.get("assets") if isinstance(data, dict) else None
        if not isinstance(assets, list) or not assets or not isinstance(assets[0], dict):
            log_info("Asset not found in API response")
            return None

        public_url = assets[0].get("public_url") or assets[0].get("url")
        return public_url if isinstance(public_url, str) and public_url else None

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        failures: List[TransportError],
        headers: Optional[dict] = None,
    ) -> Optional[httpx.Response]:
        try:
            return await client.get(url, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            failures.append(TransportError(url, str(e) or type(e).__name__))
            log_info(f"Request to {url} failed: {e!r}")
            return None

    def _store(
        self,
        cache_key: str,
        response: httpx.Response,
        source_url: str,
        source: str,
        failures: List[TransportError],
    ) -> ImageResult:
        content_type = infer_content_type(response, source_url)
        data = response.content
        self.cache.set(cache_key, CachedImage(data=data, content_type=content_type))
        log_info(f"Successfully loaded image via {source}: {len(data)} bytes")
        return ImageResult(data, content_type, source, failures=failures)
