"""
Content Fetching Service

Paginated channel and VOD listings, genre/category listings, and full-list
accumulation backed by the content cache.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, Callable, TypeVar

from stalker_client.config import settings
from stalker_client.exceptions import PortalClientError
from stalker_client.schemas import Channel, Genre, VodItem
from stalker_client.services.cache_service import CacheKind, ContentCache
from stalker_client.services.listing_types import (
    ALL_ITEMS_FILTER,
    FULL_PAGE_SIZE,
    LISTING_DEFAULTS,
    PAGE_ORIGIN,
    ResourceType,
)
from stalker_client.services.payload_parsing import iter_payload_items, parse_genres
from stalker_client.services.session_service import SessionManager
from stalker_client.utils.logging_helpers import log_page_summary


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def accumulate_pages(
    fetch_page: Callable[[int], Awaitable[list[T]]],
    *,
    origin: int = PAGE_ORIGIN,
    page_size: int = FULL_PAGE_SIZE,
    max_pages: int | None = None,
    label: str = "listing",
) -> list[T]:
    """
    Fetch consecutive pages until the last one.

    A page with no items, or with fewer than page_size items, ends the
    listing. max_pages optionally caps how many pages are requested.

    Args:
        fetch_page: Coroutine function returning one page of items
        origin: First page index
        page_size: Size of a full page
        max_pages: Hard ceiling on requested pages (None for no ceiling)
        label: Name used in progress logs

    Returns:
        All items in page order
    """
    items: list[T] = []
    page = origin
    pages_fetched = 0

    while max_pages is None or pages_fetched < max_pages:
        page_items = await fetch_page(page)
        pages_fetched += 1

        if not page_items:
            break

        items.extend(page_items)
        log_page_summary(logger, label, page, len(page_items), len(items))

        if len(page_items) < page_size:
            break
        page += 1
    else:
        logger.info("[%s] Stopped at page ceiling (%s pages)", label, max_pages)

    return items


class ContentService:
    """Channel, VOD and genre listings for the active session."""

    def __init__(self, session_manager: SessionManager, cache: ContentCache | None = None) -> None:
        self._session = session_manager
        self._cache = cache or session_manager.cache

    @staticmethod
    async def or_empty(listing: Awaitable[list[T]]) -> list[T]:
        """
        Await a listing and degrade any portal failure to an empty list.

        For call sites that cannot tell "no content" from "fetch failed" and
        do not need to.
        """
        try:
            return await listing
        except PortalClientError as e:
            logger.warning("Listing failed, returning empty result: %s", e)
            return []

    async def list_page(
        self,
        resource_type: ResourceType,
        page: int = PAGE_ORIGIN,
        filter_id: str | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Channel] | list[VodItem]:
        """
        Fetch one get_ordered_list page.

        Args:
            resource_type: ITV for channels, VOD for video-on-demand
            page: Page index
            filter_id: Genre id (ITV) or category id (VOD); '*' means no filter
            timeout: Per-call deadline in seconds

        Returns:
            Parsed items; an envelope without 'data' yields an empty list

        Raises:
            NoActiveProfile, NetworkError, ProtocolError
        """
        defaults = LISTING_DEFAULTS[resource_type]
        js = await self._session.request(
            "get_ordered_list",
            resource_type.value,
            defaults.build_params(page, filter_id),
            timeout=timeout,
        )

        data = js.get("data") if isinstance(js, dict) else None
        if data is None:
            logger.debug("No 'data' field in %s response", resource_type.value)
            return []

        items = [defaults.parse_item(item) for item in iter_payload_items(data)]
        logger.debug("Parsed %s %s items from page %s", len(items), resource_type.value, page)
        return items

    async def list_channels(self, page: int = PAGE_ORIGIN, genre_id: str | None = None) -> list[Channel]:
        return await self.list_page(ResourceType.ITV, page, genre_id)

    async def list_vod(self, page: int = PAGE_ORIGIN, category_id: str | None = None) -> list[VodItem]:
        return await self.list_page(ResourceType.VOD, page, category_id)

    async def list_all(
        self,
        resource_type: ResourceType,
        *,
        force_refresh: bool = False,
        filter_id: str | None = None,
        max_pages: int | None = None,
    ) -> list[Any]:
        """
        Accumulate every page of a listing.

        The unfiltered channel list is served from the cache while fresh;
        force_refresh skips the cache check and repopulates it. A failure on
        any page propagates and nothing partial is cached.
        """
        unfiltered = not filter_id or filter_id == ALL_ITEMS_FILTER
        cacheable = resource_type is ResourceType.ITV and unfiltered and max_pages is None

        if cacheable and not force_refresh:
            cached = self._cache.get(CacheKind.CHANNELS)
            if cached is not None:
                logger.info("Returning %s cached channels", len(cached))
                return cached

        logger.info("Fetching %s listing from portal...", resource_type.value)

        async def fetch_page(page: int) -> list[Any]:
            return await self.list_page(resource_type, page, filter_id)

        items = await accumulate_pages(
            fetch_page,
            max_pages=max_pages,
            label=resource_type.value,
        )

        if cacheable:
            self._cache.put(CacheKind.CHANNELS, items)
            logger.info("Cached %s channels", len(items))

        return items

    async def get_all_channels(self, force_refresh: bool = False) -> list[Channel]:
        return await self.list_all(ResourceType.ITV, force_refresh=force_refresh)

    async def get_all_vod(
        self,
        category_id: str | None = None,
        max_pages: int | None = None,
    ) -> list[VodItem]:
        """All VOD items of a category, capped at the configured page ceiling."""
        return await self.list_all(
            ResourceType.VOD,
            filter_id=category_id,
            max_pages=settings.portal_vod_max_pages if max_pages is None else max_pages,
        )

    async def list_genres(self) -> list[Genre]:
        """Channel genres, cached for the TTL."""
        cached = self._cache.get(CacheKind.GENRES)
        if cached is not None:
            logger.debug("Returning cached genres")
            return cached

        genres = parse_genres(await self._session.request("get_genres", "itv"))
        self._cache.put(CacheKind.GENRES, genres)
        return genres

    async def list_vod_categories(self) -> list[Genre]:
        """VOD categories; not cached."""
        return parse_genres(await self._session.request("get_categories", "vod"))
