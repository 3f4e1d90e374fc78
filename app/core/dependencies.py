from typing import Annotated

from fastapi import Depends

from app.core.board.client import BoardClient
from app.core.config import Settings, get_settings, settings
from app.core.errors import ConfigurationError
from app.core.images.cache import CacheBackend, CachedImage, MemoryCache
from app.core.images.proxy import ImageProxy

settings_dep = Annotated[Settings, Depends(get_settings)]

# Shared by every image request of this process
image_cache: CacheBackend[CachedImage] = MemoryCache(
    ttl_seconds=settings.IMAGE_CACHE_TTL_SECONDS,
    max_entries=settings.IMAGE_CACHE_MAX_ENTRIES,
)


async def get_board_client(config: settings_dep) -> BoardClient:
    if not config.MONDAY_TOKEN or not config.MONDAY_BOARD_ID:
        raise ConfigurationError("Missing API token or board ID")

    return BoardClient(
        token=config.MONDAY_TOKEN,
        api_url=config.MONDAY_API_URL,
        api_version=config.MONDAY_API_VERSION,
        timeout=config.BOARD_TIMEOUT_SECONDS,
        page_size=config.BOARD_PAGE_SIZE,
    )


def get_image_cache() -> CacheBackend[CachedImage]:
    return image_cache


# Token is checked by the route so a missing URL is reported first
async def get_image_proxy(
    config: settings_dep,
    cache: Annotated[CacheBackend[CachedImage], Depends(get_image_cache)],
) -> ImageProxy:
    return ImageProxy(
        token=config.MONDAY_TOKEN or "",
        cache=cache,
        api_url=config.MONDAY_API_URL,
        files_url=config.MONDAY_FILES_URL,
        timeout=config.IMAGE_TIMEOUT_SECONDS,
    )
