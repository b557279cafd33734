"""
Portal payload parsing

Every portal response is a JSON envelope {"js": ...}. Listing payloads come in
two shapes (a JSON array, or an object keyed by arbitrary string keys) and are
normalized here into one ordered sequence before any record is built, so
channel and VOD conversion share the same sanitization.
"""
from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlsplit

from stalker_client.exceptions import ProtocolError
from stalker_client.schemas import Channel, Genre, VodItem


logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true"}
_FALSE_STRINGS = {"0", "false"}


def parse_envelope(body: str) -> Any:
    """
    Decode a portal response body and return its 'js' payload.

    Args:
        body: Raw response text

    Returns:
        The 'js' value, or None when the envelope has no payload

    Raises:
        ProtocolError: If the body is not JSON or not a JSON object
    """
    try:
        document = json.loads(body)
    except ValueError as e:
        raise ProtocolError(f"Invalid response format: {e}") from e

    if not isinstance(document, dict):
        raise ProtocolError(
            f"Invalid response format: expected JSON object, got {type(document).__name__}"
        )

    return document.get("js")


def as_text(value: Any) -> str | None:
    """String form of a JSON scalar; None stays None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def as_optional_int(value: Any) -> int | None:
    """Tri-state integer flag: absent, unparseable and null all become None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def as_optional_bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return None


def sanitize_media_url(value: Any) -> str | None:
    """
    Keep only absolute http/https URLs.

    Empty strings, relative paths, other schemes and malformed URIs all
    collapse to None instead of raising.
    """
    text = as_text(value)
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None

    try:
        parts = urlsplit(text)
    except ValueError:
        return None

    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    if any(ch.isspace() for ch in text):
        return None
    return text


def iter_payload_items(data: Any) -> list[dict[str, Any]]:
    """
    Flatten a listing payload into an ordered list of item objects.

    Arrays are taken in order; objects keyed by arbitrary (often numeric)
    strings contribute their values in document order. Non-object entries are
    skipped and a missing payload yields an empty list.
    """
    if data is None:
        return []
    if isinstance(data, list):
        values = data
    elif isinstance(data, dict):
        values = list(data.values())
    else:
        logger.debug("Unexpected listing payload type: %s", type(data).__name__)
        return []

    return [item for item in values if isinstance(item, dict)]


def parse_channel(item: dict[str, Any]) -> Channel:
    return Channel(
        id=as_text(item.get("id")),
        name=as_text(item.get("name")),
        number=as_text(item.get("number")),
        cmd=as_text(item.get("cmd")),
        logo=sanitize_media_url(item.get("logo")),
        hd=as_optional_int(item.get("hd")),
        lock=as_optional_int(item.get("lock")),
        fav=as_optional_int(item.get("fav")),
        genre_title=as_text(item.get("tv_genre_title")),
        has_archive=as_optional_bool(item.get("has_archive")),
    )


def parse_vod_item(item: dict[str, Any]) -> VodItem:
    return VodItem(
        id=as_text(item.get("id")),
        name=as_text(item.get("name")),
        original_name=as_text(item.get("o_name")),
        description=as_text(item.get("description")),
        cmd=as_text(item.get("cmd")),
        screenshot=sanitize_media_url(item.get("screenshot_uri")),
        year=as_text(item.get("year")),
        director=as_text(item.get("director")),
        actors=as_text(item.get("actors")),
        rating=as_text(item.get("rating_imdb")),
        duration=as_text(item.get("duration")),
        hd=as_optional_int(item.get("hd")),
        fav=as_optional_int(item.get("fav")),
        category=as_text(item.get("category_title")),
    )


def parse_genres(payload: Any) -> list[Genre]:
    """Build Genre records from a get_genres / get_categories payload"""
    genres = []
    for item in iter_payload_items(payload):
        genre_id = as_text(item.get("id"))
        if genre_id is None:
            logger.debug("Skipping genre with missing ID")
            continue
        genres.append(Genre(id=genre_id, title=as_text(item.get("title")) or ""))
    return genres
