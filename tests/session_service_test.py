"""Tests for services/session_service.py - handshake protocol and request layer."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from stalker_client.exceptions import (
    DeviceConflict,
    InvalidProfileResponse,
    NetworkError,
    NoActiveProfile,
    NoToken,
    PortalError,
    PortalRejected,
    ProtocolError,
)
from stalker_client.schemas import DeviceProfile
from stalker_client.services.cache_service import CacheKind


class TestAuthenticateSuccess:
    def test_handshake_then_profile_keeps_token(self, make_session, portal, profile):
        session = make_session()
        portal.login(token="T", user_id="42")

        asyncio.run(session.authenticate(profile))

        assert session.is_authenticated
        assert session.token == "T"
        assert portal.actions() == ["handshake", "get_profile"]

    def test_request_counter_numbers_each_call(self, make_session, portal, profile):
        session = make_session()
        portal.login()

        asyncio.run(session.authenticate(profile))

        ids = [r.url.params["JsHttpRequest"] for r in portal.requests]
        assert ids == ["1-xml", "2-xml"]

    def test_identity_headers(self, make_session, portal, profile):
        session = make_session()
        portal.login()

        asyncio.run(session.authenticate(profile))

        handshake, get_profile = portal.requests
        assert "MAG200" in handshake.headers["User-Agent"]
        assert handshake.headers["X-User-Agent"] == "Model: MAG254; Link: Ethernet"
        assert handshake.headers["Cookie"] == "mac=00:1A:79:12:34:56; stb_lang=en; timezone=UTC"
        assert "Authorization" not in handshake.headers
        assert get_profile.headers["Authorization"] == "Bearer T"

    def test_url_uses_portal_load_endpoint(self, make_session, portal, profile):
        session = make_session()
        portal.login()

        asyncio.run(session.authenticate(profile))

        url = portal.requests[0].url
        assert url.host == "portal.example.com"
        assert url.path == "/stalker_portal/server/load.php"
        assert url.params["type"] == "stb"

    def test_device_params_sent_when_present(self, make_session, portal):
        session = make_session()
        portal.login()
        device = DeviceProfile(
            portal_url="http://portal.example.com",
            mac_address="00:1A:79:00:00:01",
            serial_number="SN123",
            device_id="DEV1",
            device_id2="",
            signature="SIG",
        )

        asyncio.run(session.authenticate(device))

        params = portal.calls("get_profile")[0].url.params
        assert params["sn"] == "SN123"
        assert params["device_id"] == "DEV1"
        assert params["signature"] == "SIG"
        assert "device_id2" not in params

    def test_device_params_omitted_when_absent(self, make_session, portal, profile):
        session = make_session()
        portal.login()

        asyncio.run(session.authenticate(profile))

        params = portal.calls("get_profile")[0].url.params
        for key in ("sn", "device_id", "device_id2", "signature"):
            assert key not in params

    def test_numeric_profile_id_accepted(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"token": "T"}})
        portal.add("stb", "get_profile", {"js": {"id": 42, "status": 0}})

        asyncio.run(session.authenticate(profile))

        assert session.token == "T"

    def test_reauthentication_resets_counter(self, make_session, portal, profile):
        session = make_session()
        portal.login()

        asyncio.run(session.authenticate(profile))
        asyncio.run(session.authenticate(profile))

        ids = [r.url.params["JsHttpRequest"] for r in portal.requests]
        assert ids == ["1-xml", "2-xml", "1-xml", "2-xml"]


class TestAuthenticateFailures:
    def test_list_payload_is_rejection(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": []})

        with pytest.raises(PortalRejected) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert "MAC address already in use" in exc_info.value.message
        assert session.token == ""
        assert not session.is_authenticated
        assert portal.actions() == ["handshake"]

    def test_portal_error_prefers_msg(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"error": "1", "msg": "Account blocked"}})

        with pytest.raises(PortalError) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert exc_info.value.portal_message == "Account blocked"

    def test_portal_error_without_msg(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"error": "bad mac"}})

        with pytest.raises(PortalError) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert exc_info.value.portal_message == "bad mac"

    def test_empty_error_is_ignored(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"error": "", "token": "T"}})
        portal.add("stb", "get_profile", {"js": {"id": "1"}})

        asyncio.run(session.authenticate(profile))

        assert session.token == "T"

    @pytest.mark.parametrize("payload", [{"js": {}}, {"js": {"token": ""}}, {"js": None}, {}])
    def test_missing_token(self, make_session, portal, profile, payload):
        session = make_session()
        portal.add("stb", "handshake", payload)

        with pytest.raises(NoToken):
            asyncio.run(session.authenticate(profile))

        assert session.token == ""

    @pytest.mark.parametrize("message", [
        "MAC conflict detected",
        "Device CONFLICT",
        "serial number Mismatch",
    ])
    def test_device_conflict_any_case(self, make_session, portal, profile, message):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"token": "T"}})
        portal.add("stb", "get_profile", {"js": {"msg": message, "id": "42"}})

        with pytest.raises(DeviceConflict) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert exc_info.value.portal_message == message
        assert session.token == ""

    def test_other_msg_is_not_conflict(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"token": "T"}})
        portal.add("stb", "get_profile", {"js": {"msg": "Welcome", "id": "42"}})

        asyncio.run(session.authenticate(profile))

        assert session.token == "T"

    @pytest.mark.parametrize("payload", [{"js": {"id": ""}}, {"js": {}}, {"js": []}])
    def test_missing_profile_id(self, make_session, portal, profile, payload):
        session = make_session()
        portal.add("stb", "handshake", {"js": {"token": "T"}})
        portal.add("stb", "get_profile", payload)

        with pytest.raises(InvalidProfileResponse):
            asyncio.run(session.authenticate(profile))

        assert not session.is_authenticated

    def test_malformed_json_is_protocol_error(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", "<html>blocked</html>")

        with pytest.raises(ProtocolError):
            asyncio.run(session.authenticate(profile))

    def test_top_level_array_is_protocol_error(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", [1, 2, 3])

        with pytest.raises(ProtocolError):
            asyncio.run(session.authenticate(profile))

    def test_http_error_status_is_network_error(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", httpx.Response(503, text="busy"))

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert "503" in exc_info.value.message

    def test_connection_error_is_network_error(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", httpx.ConnectError("connection refused"))

        with pytest.raises(NetworkError):
            asyncio.run(session.authenticate(profile))

    def test_timeout_is_network_error(self, make_session, portal, profile):
        session = make_session()
        portal.add("stb", "handshake", httpx.ReadTimeout("timed out"))

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(session.authenticate(profile))

        assert "timeout" in exc_info.value.message


class TestAuthenticateCache:
    def test_cache_cleared_before_first_request(self, make_session, portal, profile):
        session = make_session()
        session.cache.put(CacheKind.CHANNELS, ["old"])
        session.cache.put(CacheKind.GENRES, ["old"])
        seen: list[object] = []

        def handshake(request):
            seen.append(session.cache.get(CacheKind.CHANNELS))
            seen.append(session.cache.get(CacheKind.GENRES))
            return httpx.ConnectError("down")

        portal.add("stb", "handshake", handshake)

        with pytest.raises(NetworkError):
            asyncio.run(session.authenticate(profile))

        assert seen == [None, None]
        assert session.cache.get(CacheKind.CHANNELS) is None
        assert session.cache.get(CacheKind.GENRES) is None


class TestAuthenticateConcurrency:
    def test_concurrent_calls_do_not_interleave(self, make_session, portal, profile):
        session = make_session(handshake_delay=0.01)
        portal.login()

        async def scenario():
            await asyncio.gather(session.authenticate(profile), session.authenticate(profile))

        asyncio.run(scenario())

        assert portal.actions() == ["handshake", "get_profile", "handshake", "get_profile"]
        ids = [r.url.params["JsHttpRequest"] for r in portal.requests]
        assert ids == ["1-xml", "2-xml", "1-xml", "2-xml"]
        assert session.token == "T"


class TestRequest:
    def test_request_before_authentication(self, make_session):
        session = make_session()

        with pytest.raises(NoActiveProfile):
            asyncio.run(session.request("get_genres", "itv"))

    def test_missing_envelope_payload_is_none(self, make_session, portal, profile):
        session = make_session()
        portal.login()
        portal.add("itv", "get_genres", {"other": 1})

        async def scenario():
            await session.authenticate(profile)
            return await session.request("get_genres", "itv")

        assert asyncio.run(scenario()) is None

    def test_authorized_requests_carry_token(self, make_session, portal, profile):
        session = make_session()
        portal.login(token="abc")
        portal.add("itv", "get_genres", {"js": []})

        async def scenario():
            await session.authenticate(profile)
            await session.request("get_genres", "itv")

        asyncio.run(scenario())

        assert portal.calls("get_genres")[0].headers["Authorization"] == "Bearer abc"


class TestLogout:
    def test_logout_drops_session(self, make_session, portal, profile):
        session = make_session()
        portal.login()
        portal.add("stb", "logout", {"js": True})

        async def scenario():
            await session.authenticate(profile)
            await session.logout()

        asyncio.run(scenario())

        assert portal.actions()[-1] == "logout"
        assert session.token == ""
        assert session.session is None

    def test_logout_failure_is_swallowed(self, make_session, portal, profile):
        session = make_session()
        portal.login()
        portal.add("stb", "logout", httpx.ConnectError("down"))

        async def scenario():
            await session.authenticate(profile)
            await session.logout()

        asyncio.run(scenario())

        assert not session.is_authenticated

    def test_logout_without_session_is_noop(self, make_session, portal):
        session = make_session()

        asyncio.run(session.logout())

        assert portal.requests == []
