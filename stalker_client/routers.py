from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from stalker_client.client import StalkerClient
from stalker_client.dependencies import get_portal_client, get_profile_store
from stalker_client.schemas import (
    AuthRequest,
    AuthResponse,
    Channel,
    DeviceProfile,
    Genre,
    LinkRequest,
    LinkResponse,
    ProfileCreateRequest,
    VodItem,
)
from stalker_client.services.listing_types import PAGE_ORIGIN
from stalker_client.services.profile_store import ProfileStore


logger = logging.getLogger(__name__)

main_router = APIRouter()

PortalClient = Annotated[StalkerClient, Depends(get_portal_client)]
Profiles = Annotated[ProfileStore, Depends(get_profile_store)]


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "Stalker Portal Client",
        "version": "0.1.0",
        "endpoints": {
            "profiles": "/profiles - List or add device profiles",
            "auth": "/auth - Authenticate a stored profile (POST)",
            "channels": "/channels, /channels/all - Live TV listings",
            "vod": "/vod, /vod/all, /vod/categories - VOD listings",
            "link": "/link - Resolve a playable stream URL (POST)",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(client: PortalClient) -> dict:
    """Health check endpoint"""
    next_ping = client.keepalive.get_next_run_time()
    profile = client.profile
    return {
        "status": "ok",
        "authenticated": client.is_authenticated,
        "profile_id": profile.id if profile else None,
        "keepalive_running": client.keepalive.running,
        "next_keepalive": next_ping.isoformat() if next_ping else None
    }


@main_router.get("/profiles", response_model=list[DeviceProfile])
async def list_profiles(store: Profiles) -> list[DeviceProfile]:
    return await store.list_profiles()


@main_router.post("/profiles", response_model=DeviceProfile, status_code=201)
async def add_profile(request: ProfileCreateRequest, store: Profiles) -> DeviceProfile:
    try:
        profile = request.to_profile()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await store.add_profile(profile)


@main_router.delete("/profiles/{profile_id}", status_code=204)
async def delete_profile(profile_id: str, store: Profiles) -> None:
    if not await store.delete_profile(profile_id):
        raise HTTPException(status_code=404, detail=f"Profile not found: {profile_id}")


@main_router.post("/auth", response_model=AuthResponse)
async def authenticate(request: AuthRequest, client: PortalClient, store: Profiles) -> AuthResponse:
    """
    Authenticate a stored profile against its portal

    Portal and network failures are returned as standard error responses.
    """
    profile = await store.get_profile(request.profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Profile not found: {request.profile_id}")

    logger.info("Authentication requested for profile %s", profile.id)
    await client.authenticate(profile)
    await store.set_current_profile(profile)

    return AuthResponse(status="authenticated", profile_id=profile.id, portal_url=profile.portal_url)


@main_router.post("/logout")
async def logout(client: PortalClient) -> dict:
    await client.logout()
    return {"status": "logged_out"}


@main_router.get("/genres", response_model=list[Genre])
async def get_genres(client: PortalClient) -> list[Genre]:
    return await client.get_genres()


@main_router.get("/channels", response_model=list[Channel])
async def get_channels(
    client: PortalClient,
    genre: str | None = None,
    page: Annotated[int, Query(ge=0)] = PAGE_ORIGIN,
) -> list[Channel]:
    return await client.get_channels(genre, page)


@main_router.get("/channels/all", response_model=list[Channel])
async def get_all_channels(client: PortalClient, refresh: bool = False) -> list[Channel]:
    """All channels, served from the cache unless refresh is set"""
    return await client.get_all_channels(force_refresh=refresh)


@main_router.get("/vod/categories", response_model=list[Genre])
async def get_vod_categories(client: PortalClient) -> list[Genre]:
    return await client.get_vod_categories()


@main_router.get("/vod", response_model=list[VodItem])
async def get_vod_items(
    client: PortalClient,
    category: str | None = None,
    page: Annotated[int, Query(ge=0)] = PAGE_ORIGIN,
) -> list[VodItem]:
    return await client.get_vod_items(category, page)


@main_router.get("/vod/all", response_model=list[VodItem])
async def get_all_vod_items(
    client: PortalClient,
    category: str | None = None,
    max_pages: Annotated[int | None, Query(ge=1)] = None,
) -> list[VodItem]:
    return await client.get_all_vod_items(category, max_pages)


@main_router.post("/link", response_model=LinkResponse)
async def create_link(request: LinkRequest, client: PortalClient) -> LinkResponse:
    url = await client.create_link(request.cmd, request.is_vod)
    return LinkResponse(url=url)


@main_router.post("/cache/clear")
async def clear_cache(client: PortalClient) -> dict:
    client.clear_cache()
    return {"status": "cleared"}
