"""
Portal client

One client instance owns one portal session and composes the session,
content, link and keepalive services around it.
"""
from __future__ import annotations

import logging

import httpx

from stalker_client.schemas import Channel, DeviceProfile, Genre, VodItem
from stalker_client.services.cache_service import ContentCache
from stalker_client.services.content_service import ContentService
from stalker_client.services.keepalive_service import KeepaliveService
from stalker_client.services.link_service import LinkService
from stalker_client.services.listing_types import PAGE_ORIGIN
from stalker_client.services.session_service import SessionManager


logger = logging.getLogger(__name__)


class StalkerClient:
    """
    Client for a Stalker-style set-top-box portal.

    Listing methods raise on failure; pass best_effort=True to get an empty
    list instead.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        cache: ContentCache | None = None,
        *,
        handshake_delay: float | None = None,
        keepalive_interval: int | None = None,
    ) -> None:
        self.session = SessionManager(http_client, cache, handshake_delay=handshake_delay)
        self.cache = self.session.cache
        self.content = ContentService(self.session)
        self.links = LinkService(self.session)
        self.keepalive = KeepaliveService(self.session, keepalive_interval)

    @property
    def profile(self) -> DeviceProfile | None:
        return self.session.profile

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def authenticate(self, profile: DeviceProfile) -> None:
        await self.session.authenticate(profile)

    async def logout(self) -> None:
        await self.session.logout()

    def clear_cache(self) -> None:
        self.cache.clear()

    async def get_genres(self, *, best_effort: bool = False) -> list[Genre]:
        return await self._listing(self.content.list_genres(), best_effort)

    async def get_channels(
        self,
        genre_id: str | None = None,
        page: int = PAGE_ORIGIN,
        *,
        best_effort: bool = False,
    ) -> list[Channel]:
        return await self._listing(self.content.list_channels(page, genre_id), best_effort)

    async def get_all_channels(
        self,
        force_refresh: bool = False,
        *,
        best_effort: bool = False,
    ) -> list[Channel]:
        return await self._listing(self.content.get_all_channels(force_refresh), best_effort)

    async def get_vod_categories(self, *, best_effort: bool = False) -> list[Genre]:
        return await self._listing(self.content.list_vod_categories(), best_effort)

    async def get_vod_items(
        self,
        category_id: str | None = None,
        page: int = PAGE_ORIGIN,
        *,
        best_effort: bool = False,
    ) -> list[VodItem]:
        return await self._listing(self.content.list_vod(page, category_id), best_effort)

    async def get_all_vod_items(
        self,
        category_id: str | None = None,
        max_pages: int | None = None,
        *,
        best_effort: bool = False,
    ) -> list[VodItem]:
        return await self._listing(self.content.get_all_vod(category_id, max_pages), best_effort)

    async def create_link(self, cmd: str, is_vod: bool = False) -> str:
        return await self.links.resolve_stream(cmd, is_vod)

    async def send_watchdog(self) -> None:
        """Send one watchdog ping outside the keepalive schedule"""
        await self.keepalive.ping()

    async def aclose(self) -> None:
        """Stop the keepalive, log out best-effort and close the HTTP client"""
        self.keepalive.shutdown()
        await self.session.logout()
        await self.session.aclose()

    async def _listing(self, listing, best_effort: bool):
        if best_effort:
            return await ContentService.or_empty(listing)
        return await listing
