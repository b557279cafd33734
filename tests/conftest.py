"""Shared fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from portal_fakes import FakeClock, FakePortal
from stalker_client.schemas import DeviceProfile
from stalker_client.services.cache_service import ContentCache
from stalker_client.services.session_service import SessionManager


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def profile() -> DeviceProfile:
    return DeviceProfile(
        name="Living room",
        portal_url="http://portal.example.com/",
        mac_address="00:1a:79:12:34:56",
    )


@pytest.fixture
def make_session(portal: FakePortal, clock: FakeClock) -> Callable[..., SessionManager]:
    def factory(**kwargs: Any) -> SessionManager:
        kwargs.setdefault("handshake_delay", 0)
        cache = kwargs.pop("cache", None) or ContentCache(ttl_seconds=300, clock=clock)
        return SessionManager(portal.http_client(), cache, **kwargs)

    return factory
