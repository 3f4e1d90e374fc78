import json

import httpx
import pytest
from httpx import AsyncClient

from app.main import app
from app.core.dependencies import get_image_proxy
from app.core.errors import ImageProxyError
from app.core.images.cache import MemoryCache
from app.core.images.proxy import ImageProxy, extract_asset_id, is_monday_host

PROTECTED_URL = "https://acme.monday.com/protected_static/1/resources/987654/mockup.png"
PUBLIC_URL = "https://files-cdn.test/987654/mockup.png"
DOWNLOAD_URL = "https://files.test/download/987654"


def make_proxy(handler, cache=None):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageProxy(
        token="test-token",
        cache=cache if cache is not None else MemoryCache(),
        api_url="https://api.test/v2",
        files_url="https://files.test/download",
        http_client=http_client,
    )


def asset_response(public_url=PUBLIC_URL):
    return httpx.Response(
        200, content=json.dumps({"data": {"assets": [{"id": "987654", "public_url": public_url}]}})
    )


def test_extract_asset_id():
    assert extract_asset_id(PROTECTED_URL) == "987654"
    assert extract_asset_id("https://x/y.png") is None


@pytest.mark.asyncio
async def test_public_url_used_first():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if request.method == "POST":
            return asset_response()
        return httpx.Response(200, content=b"PNGDATA", headers={"content-type": "image/png"})

    result = await make_proxy(handler).fetch(PROTECTED_URL)

    assert result.source == "MondayAPI"
    assert result.data == b"PNGDATA"
    assert result.content_type == "image/png"
    assert calls == ["https://api.test/v2", PUBLIC_URL]


@pytest.mark.asyncio
async def test_falls_through_to_download_then_direct():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        if request.method == "POST":
            return asset_response()
        if url == PUBLIC_URL:
            raise httpx.ConnectTimeout("slow", request=request)
        if url == DOWNLOAD_URL:
            return httpx.Response(403)
        assert request.headers["Authorization"] == "Bearer test-token"
        return httpx.Response(200, content=b"JPEG")

    result = await make_proxy(handler).fetch(PROTECTED_URL)

    assert calls == ["https://api.test/v2", PUBLIC_URL, DOWNLOAD_URL, PROTECTED_URL]
    assert result.source == "DirectURL"
    assert result.content_type == "image/png"  # guessed from the file name
    assert len(result.failures) == 1


@pytest.mark.asyncio
async def test_all_attempts_failing_reports_last_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, content=json.dumps({"errors": [{"message": "nope"}]}))
        return httpx.Response(404)

    with pytest.raises(ImageProxyError) as exc_info:
        await make_proxy(handler).fetch(PROTECTED_URL)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_network_down_everywhere_is_502():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(ImageProxyError) as exc_info:
        await make_proxy(handler).fetch(PROTECTED_URL)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_cache_hit_and_bypass():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "POST":
            return asset_response()
        return httpx.Response(200, content=b"IMG", headers={"content-type": "image/webp"})

    proxy = make_proxy(handler)
    await proxy.fetch(PROTECTED_URL)
    cached = await proxy.fetch(PROTECTED_URL)

    assert cached.cached is True
    assert cached.data == b"IMG"
    assert len(calls) == 2

    await proxy.fetch(PROTECTED_URL, skip_cache=True)
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_missing_asset_id():
    proxy = make_proxy(lambda request: httpx.Response(200))

    with pytest.raises(ImageProxyError) as exc_info:
        await proxy.fetch("https://x/no-resource.png")

    assert exc_info.value.status_code == 400


# =========================
# Endpoint
# =========================
@pytest.mark.asyncio
async def test_image_endpoint_returns_bytes(client: AsyncClient):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return asset_response()
        return httpx.Response(200, content=b"PNGDATA", headers={"content-type": "image/png"})

    proxy = make_proxy(handler)
    app.dependency_overrides[get_image_proxy] = lambda: proxy

    response = await client.get("/api/monday-image", params={"url": PROTECTED_URL, "id": "987654"})
    assert response.status_code == 200
    assert response.content == b"PNGDATA"
    assert response.headers["content-type"] == "image/png"
    assert response.headers["x-source"] == "MondayAPI"

    again = await client.get("/api/monday-image", params={"url": PROTECTED_URL})
    assert again.headers["x-cache"] == "HIT"


@pytest.mark.asyncio
async def test_image_endpoint_missing_url(client: AsyncClient):
    response = await client.get("/api/monday-image")
    assert response.status_code == 400
    assert response.text == "Missing image URL"


@pytest.mark.asyncio
async def test_image_endpoint_missing_token(client: AsyncClient):
    proxy = make_proxy(lambda request: httpx.Response(200))
    proxy.token = ""
    app.dependency_overrides[get_image_proxy] = lambda: proxy

    response = await client.get("/api/monday-image", params={"url": PROTECTED_URL})
    assert response.status_code == 500
    assert response.text == "Missing API token"


def test_is_monday_host():
    assert is_monday_host(PROTECTED_URL) is True
    assert is_monday_host("https://monday.com/x.png") is True
    assert is_monday_host("https://evil.example/monday.com/x.png") is False
    assert is_monday_host("https://notmonday.com/x.png") is False


@pytest.mark.asyncio
async def test_direct_request_to_foreign_host_has_no_credentials():
    """The API token is never sent to a host outside monday.com"""
    foreign_url = "https://evil.example/steal.png"
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, content=json.dumps({"data": {"assets": []}}))
        if str(request.url) == foreign_url:
            seen["authorization"] = request.headers.get("Authorization")
            seen["cookie"] = request.headers.get("Cookie")
            return httpx.Response(200, content=b"IMG")
        return httpx.Response(404)

    result = await make_proxy(handler).fetch(foreign_url, asset_id="1")

    assert result.source == "DirectURL"
    assert seen == {"authorization": None, "cookie": None}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        [{"oops": 1}],
        {"data": None},
        {"data": {"assets": [None]}},
        {"data": {"assets": "nope"}},
        {"data": {"assets": [{"public_url": 5}]}},
    ],
)
async def test_odd_asset_response_falls_through_to_download(body):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if request.method == "POST":
            return httpx.Response(200, content=json.dumps(body))
        return httpx.Response(200, content=b"IMG", headers={"content-type": "image/png"})

    result = await make_proxy(handler).fetch(PROTECTED_URL)

    assert result.source == "FileAPI"
    assert calls == ["https://api.test/v2", DOWNLOAD_URL]
