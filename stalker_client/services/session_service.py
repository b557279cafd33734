"""
Portal Session Service

Owns the authentication token and device-identity headers, runs the two-step
handshake/get_profile protocol, and issues every portal request.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from stalker_client.config import settings
from stalker_client.exceptions import (
    DeviceConflict,
    InvalidProfileResponse,
    NetworkError,
    NoActiveProfile,
    NoToken,
    PortalClientError,
    PortalError,
    PortalRejected,
)
from stalker_client.schemas import DeviceProfile
from stalker_client.services.cache_service import ContentCache
from stalker_client.services.payload_parsing import as_text, parse_envelope
from stalker_client.services.url_builder import QueryParams, RequestCounter, build_portal_url
from stalker_client.utils.logging_helpers import (
    log_portal_request,
    log_section_end,
    log_section_start,
    mask_secret,
)


logger = logging.getLogger(__name__)

DEVICE_CONFLICT_MARKERS = ("conflict", "mismatch")


@dataclass(slots=True)
class PortalSession:
    """One live session: the borrowed profile, its token and request counter."""
    profile: DeviceProfile
    token: str = ""
    counter: RequestCounter = field(default_factory=RequestCounter)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


def create_http_client() -> httpx.AsyncClient:
    """HTTP client configured from settings.

    TLS validation is only skipped when PORTAL_INSECURE_SKIP_TLS_VERIFY is set.
    """
    return httpx.AsyncClient(
        verify=not settings.portal_insecure_skip_tls_verify,
        timeout=settings.portal_request_timeout_sec,
        follow_redirects=True,
    )


class SessionManager:
    """
    Portal session owner.

    Exactly one PortalSession is live per manager. authenticate() is
    single-flight: concurrent calls wait for each other instead of
    interleaving token resets.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        cache: ContentCache | None = None,
        *,
        handshake_delay: float | None = None,
        user_agent: str | None = None,
        language: str | None = None,
    ) -> None:
        self._http = http_client or create_http_client()
        self.cache = cache or ContentCache(ttl_seconds=settings.portal_cache_ttl_sec)
        self._handshake_delay = (
            settings.portal_handshake_delay_sec if handshake_delay is None else handshake_delay
        )
        self._user_agent = user_agent or settings.portal_user_agent
        self._language = language or settings.portal_language
        self._session: PortalSession | None = None
        self._auth_lock = asyncio.Lock()

    @property
    def session(self) -> PortalSession | None:
        return self._session

    @property
    def profile(self) -> DeviceProfile | None:
        return self._session.profile if self._session else None

    @property
    def token(self) -> str:
        return self._session.token if self._session else ""

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and self._session.is_authenticated

    def _require_session(self) -> PortalSession:
        if self._session is None:
            raise NoActiveProfile()
        return self._session

    def build_url(
        self,
        action: str,
        resource_type: str,
        params: QueryParams | None = None,
    ) -> str:
        """Build an action URL, consuming one request-counter value."""
        session = self._require_session()
        return build_portal_url(
            session.profile.portal_url,
            action,
            resource_type,
            session.counter.take(),
            params,
        )

    def build_headers(self, token: str | None = None) -> dict[str, str]:
        """Device identity headers, plus Authorization once a token exists."""
        session = self._require_session()
        profile = session.profile
        headers = {
            "User-Agent": self._user_agent,
            "X-User-Agent": f"Model: {profile.stb_type}; Link: Ethernet",
            "Cookie": (
                f"mac={profile.mac_address}; stb_lang={self._language}; "
                f"timezone={profile.timezone}"
            ),
        }
        bearer = session.token if token is None else token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def request(
        self,
        action: str,
        resource_type: str,
        params: QueryParams | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Issue one portal GET and return the envelope's 'js' payload.

        Args:
            action: Portal action
            resource_type: Portal resource type
            params: Extra query parameters, in order
            token: Bearer token override (used during the handshake)
            timeout: Per-call deadline in seconds, defaults to the client timeout

        Returns:
            Decoded 'js' payload (None when absent)

        Raises:
            NoActiveProfile: If no profile has been established
            NetworkError: On connection errors, timeouts and non-2xx statuses
            ProtocolError: If the body is not a JSON object
        """
        url = self.build_url(action, resource_type, params)
        headers = self.build_headers(token)
        log_portal_request(logger, action, resource_type, url)

        try:
            response = await self._http.get(
                url,
                headers=headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Network error: HTTP {e.response.status_code} for {resource_type}/{action}"
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"Network error: timeout during {resource_type}/{action}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(f"Network error: {type(e).__name__}: {e}") from e

        logger.debug(
            "Portal response %s/%s: %s characters", resource_type, action, len(response.text)
        )
        return parse_envelope(response.text)

    async def authenticate(self, profile: DeviceProfile) -> None:
        """
        Authenticate the device profile against its portal.

        Resets the session (empty token, counter back to 1) and clears the
        content cache before any network call, then runs handshake and
        get_profile. The token is kept only when both steps succeed.

        Raises:
            PortalRejected: Handshake payload was a list instead of an object
            PortalError: Handshake carried an explicit error
            NoToken: Handshake carried no token
            DeviceConflict: get_profile reported a conflict or mismatch
            InvalidProfileResponse: get_profile returned no user id
            NetworkError: Connection or timeout failure
            ProtocolError: Malformed JSON
        """
        async with self._auth_lock:
            self._session = PortalSession(profile=profile)
            self.cache.clear()

            section = f"authentication for MAC {mask_secret(profile.mac_address, visible=5)}"
            log_section_start(logger, section)

            if self._handshake_delay > 0:
                await asyncio.sleep(self._handshake_delay)

            token = await self._handshake()
            await self._verify_profile(profile, token)

            self._session.token = token
            log_section_end(logger, section)

    async def _handshake(self) -> str:
        js = await self.request("handshake", "stb")

        if isinstance(js, list):
            logger.warning("Portal returned js as array instead of object - authentication rejected")
            raise PortalRejected()

        if not isinstance(js, dict):
            logger.warning("Handshake response has no payload object")
            raise NoToken()

        error = as_text(js.get("error"))
        if error:
            message = as_text(js.get("msg")) or error
            logger.warning("Portal returned error: %s", message)
            raise PortalError(message)

        token = as_text(js.get("token"))
        if not token:
            logger.warning("No token in handshake response")
            raise NoToken()

        logger.info("Token received: %s", mask_secret(token))
        return token

    async def _verify_profile(self, profile: DeviceProfile, token: str) -> None:
        params = profile.device_params()
        if params:
            logger.debug("Sending device parameters: %s", ", ".join(params))

        js = await self.request("get_profile", "stb", params or None, token=token)

        if not isinstance(js, dict):
            logger.warning("Profile error: payload is not an object")
            raise InvalidProfileResponse()

        message = as_text(js.get("msg"))
        if message and any(marker in message.lower() for marker in DEVICE_CONFLICT_MARKERS):
            logger.warning("Profile error: %s", message)
            raise DeviceConflict(message)

        profile_id = as_text(js.get("id"))
        if not profile_id:
            logger.warning("Profile error: No ID in response")
            raise InvalidProfileResponse()

        logger.info("Profile loaded successfully - User ID: %s", profile_id)

    async def logout(self) -> None:
        """
        Best-effort logout.

        Failures are logged and never raised; the session is dropped either way.
        """
        async with self._auth_lock:
            if self._session is None:
                return

            logger.info("Attempting logout...")
            try:
                await self.request("logout", "stb")
                logger.info("Logout successful")
            except PortalClientError as e:
                logger.warning("Logout error (non-critical): %s", e)
            finally:
                self._session.token = ""
                self._session = None

    async def aclose(self) -> None:
        """Close the underlying HTTP client"""
        await self._http.aclose()
