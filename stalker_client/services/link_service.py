"""
Stream link resolution

Exchanges a channel or VOD command string for a directly playable URL via
the portal's create_link action.
"""
from __future__ import annotations

import logging
import re

from stalker_client.exceptions import ResolveError
from stalker_client.services.listing_types import ResourceType
from stalker_client.services.payload_parsing import as_text
from stalker_client.services.session_service import SessionManager


logger = logging.getLogger(__name__)

PLAYER_PREFIX_PATTERN = re.compile(r"^(?:ffmpeg|ffrt\d*|auto)\s+", re.IGNORECASE)
QUOTE_CHARS = "\"'"


def clean_stream_command(command: str) -> str:
    """Strip a leading player-invocation token and surrounding quotes."""
    cleaned = command.strip()
    cleaned = PLAYER_PREFIX_PATTERN.sub("", cleaned, count=1).strip()
    return cleaned.strip(QUOTE_CHARS)


class LinkService:
    """Resolves playable stream URLs for the active session."""

    def __init__(self, session_manager: SessionManager) -> None:
        self._session = session_manager

    async def resolve_stream(
        self,
        command: str,
        is_vod: bool = False,
        *,
        timeout: float | None = None,
    ) -> str:
        """
        Resolve a command string into a stream URL.

        Args:
            command: Command string of a channel or VOD item
            is_vod: Resolve against the VOD resource type instead of ITV
            timeout: Per-call deadline in seconds

        Returns:
            Cleaned stream URL

        Raises:
            ResolveError: If the portal returned no usable 'cmd'
            NoActiveProfile, NetworkError, ProtocolError
        """
        resource_type = ResourceType.VOD if is_vod else ResourceType.ITV
        params = {
            "cmd": command,
            "series": "",
            "forced_storage": "undefined",
            "disable_ad": "0",
            "download": "0",
        }
        js = await self._session.request(
            "create_link", resource_type.value, params, timeout=timeout
        )

        stream_cmd = as_text(js.get("cmd")) if isinstance(js, dict) else None
        if not stream_cmd:
            logger.warning("create_link returned no cmd for %s", resource_type.value)
            raise ResolveError("Stream link could not be extracted: no cmd in response")

        url = clean_stream_command(stream_cmd)
        if not url:
            raise ResolveError("Stream link could not be extracted: empty cmd")

        logger.debug("Resolved %s stream link", resource_type.value)
        return url
