"""Tests for client.py - the composed portal client."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from portal_fakes import FakePortal, page_of
from stalker_client.client import StalkerClient
from stalker_client.exceptions import NetworkError


@pytest.fixture
def stalker(profile):
    portal = FakePortal()
    client = StalkerClient(portal.http_client(), handshake_delay=0)
    portal.login()
    asyncio.run(client.authenticate(profile))
    return client, portal


class TestBestEffort:
    def test_failure_raises_by_default(self, stalker):
        client, portal = stalker
        portal.add("itv", "get_genres", httpx.ConnectError("down"))

        with pytest.raises(NetworkError):
            asyncio.run(client.get_genres())

    def test_best_effort_returns_empty(self, stalker):
        client, portal = stalker
        portal.add("itv", "get_ordered_list", httpx.ConnectError("down"))

        assert asyncio.run(client.get_channels(best_effort=True)) == []
        assert asyncio.run(client.get_all_channels(best_effort=True)) == []

    def test_best_effort_passes_results(self, stalker):
        client, portal = stalker
        portal.add("vod", "get_ordered_list", {"js": {"data": page_of(2, key="film")}})

        items = asyncio.run(client.get_vod_items("1", best_effort=True))

        assert [i.name for i in items] == ["film-0", "film-1"]


class TestLifecycle:
    def test_clear_cache(self, stalker):
        client, portal = stalker
        portal.add("itv", "get_genres", {"js": [{"id": "1", "title": "News"}]})
        asyncio.run(client.get_genres())

        client.clear_cache()
        asyncio.run(client.get_genres())

        assert len(portal.calls("get_genres")) == 2

    def test_send_watchdog(self, stalker):
        client, portal = stalker
        portal.add("watchdog", "watchdog", {"js": {"data": 1}})

        asyncio.run(client.send_watchdog())

        assert portal.actions()[-1] == "watchdog"
        assert portal.calls("watchdog")[0].headers["Authorization"] == "Bearer T"

    def test_send_watchdog_failure_is_swallowed(self, stalker):
        client, portal = stalker
        portal.add("watchdog", "watchdog", httpx.ConnectError("down"))

        asyncio.run(client.send_watchdog())

        assert client.is_authenticated

    def test_aclose_logs_out(self, stalker):
        client, portal = stalker
        portal.add("stb", "logout", {"js": True})

        asyncio.run(client.aclose())

        assert portal.actions()[-1] == "logout"
        assert not client.is_authenticated
        assert client.profile is None
