from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.core.dependencies import get_image_proxy
from app.core.errors import ImageProxyError
from app.core.images.proxy import ImageProxy, log_info

router = APIRouter(prefix="/api", tags=["Images"])

proxy_dep = Annotated[ImageProxy, Depends(get_image_proxy)]


@router.get("/monday-image", response_class=Response)
async def monday_image(
    proxy: proxy_dep,
    url: Optional[str] = None,
    asset_id: Annotated[Optional[str], Query(alias="id")] = None,
    t: Optional[str] = None,
):
    """
    Stream a protected board image to the browser.
    Any `t` parameter skips the cache (the UI sends a timestamp on retry).
    """
    log_info(f"Request received for: {(url or '')[:100]}...")

    if not url:
        raise ImageProxyError(400, "Missing image URL")
    if not proxy.token:
        raise ImageProxyError(500, "Missing API token")

    result = await proxy.fetch(url, asset_id=asset_id or None, skip_cache=t is not None)

    headers = {
        "Cache-Control": "public, max-age=3600",
        "Access-Control-Allow-Origin": "*",
    }
    if result.cached:
        headers["X-Cache"] = "HIT"
    else:
        headers["X-Source"] = result.source

    return Response(content=result.data, media_type=result.content_type, headers=headers)
