"""
Dependency providers

Process-wide client and profile store instances used by the HTTP facade.
Tests swap them with set_* and reset with reset_dependencies().
"""
import logging

from stalker_client.client import StalkerClient
from stalker_client.config import settings
from stalker_client.services.profile_store import ProfileStore


logger = logging.getLogger(__name__)

_client: StalkerClient | None = None
_profile_store: ProfileStore | None = None


def get_portal_client() -> StalkerClient:
    """
    Get or create the global portal client singleton.

    Returns:
        The global StalkerClient instance
    """
    global _client
    if _client is None:
        _client = StalkerClient()
        logger.debug("Created portal client")
    return _client


def get_profile_store() -> ProfileStore:
    """
    Get or create the global profile store.

    Returns:
        ProfileStore bound to settings.profiles_path
    """
    global _profile_store
    if _profile_store is None:
        _profile_store = ProfileStore(settings.profiles_path)
    return _profile_store


def set_portal_client(client: StalkerClient) -> None:
    global _client
    _client = client


def set_profile_store(store: ProfileStore) -> None:
    global _profile_store
    _profile_store = store


def reset_dependencies() -> None:
    """
    Drop the singletons (mainly for testing).

    WARNING: Does not close the client's HTTP connections.
    """
    global _client, _profile_store
    _client = None
    _profile_store = None
