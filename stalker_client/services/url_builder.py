"""
Portal URL construction

Every portal call is a GET against <portal>/stalker_portal/server/load.php with
type/action/JsHttpRequest fixed parameters followed by action-specific ones.
"""
from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from urllib.parse import quote


PORTAL_PATH_SEGMENT = "stalker_portal"
LOAD_ENDPOINT = "server/load.php"

QueryParams = Mapping[str, str] | Iterable[tuple[str, str]]


class RequestCounter:
    """
    JsHttpRequest counter shared by every request of one session.

    Starts at 1 and increases by exactly one per issued URL, from any thread
    or task.
    """

    def __init__(self, start: int = 1) -> None:
        self._next = start
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        """Value the next request will carry"""
        with self._lock:
            return self._next

    def take(self) -> int:
        """Return the current value and advance the counter"""
        with self._lock:
            value = self._next
            self._next += 1
            return value


def portal_base_url(portal_url: str) -> str:
    """Strip trailing slashes and make sure the portal path segment is present."""
    base = portal_url.rstrip("/")
    if not base.lower().endswith(PORTAL_PATH_SEGMENT):
        base = f"{base}/{PORTAL_PATH_SEGMENT}"
    return base


def build_portal_url(
    portal_url: str,
    action: str,
    resource_type: str,
    request_id: int,
    params: QueryParams | None = None,
) -> str:
    """
    Build a fully-qualified portal action URL.

    Args:
        portal_url: Portal URL from the device profile
        action: Portal action (handshake, get_ordered_list, ...)
        resource_type: Portal resource type (stb, itv, vod, watchdog)
        request_id: JsHttpRequest counter value for this request
        params: Extra parameters, appended percent-encoded in the given order

    Returns:
        URL string
    """
    url = (
        f"{portal_base_url(portal_url)}/{LOAD_ENDPOINT}"
        f"?type={quote(resource_type, safe='')}"
        f"&action={quote(action, safe='')}"
        f"&JsHttpRequest={request_id}-xml"
    )

    if params:
        items = params.items() if isinstance(params, Mapping) else params
        for key, value in items:
            url += f"&{quote(key, safe='')}={quote(str(value), safe='')}"

    return url
