"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without leaking session secrets.
"""
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


SENSITIVE_PARAMS = {"sn", "device_id", "device_id2", "signature"}


def mask_secret(value: str | None, visible: int = 4) -> str:
    """
    Mask a secret, keeping only its last characters.

    Args:
        value: Secret to mask (token, MAC address, serial number)
        visible: Number of trailing characters left readable

    Returns:
        Masked representation, '<empty>' for missing values
    """
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def sanitize_url_for_logging(url: str) -> str:
    """Mask device identity parameters in a portal URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.query:
        return url
    query = [
        (key, mask_secret(value) if key in SENSITIVE_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_portal_request(logger: logging.Logger, action: str, resource_type: str, url: str) -> None:
    """Log an outgoing portal request at debug level."""
    logger.debug(f"Portal request {resource_type}/{action}: {sanitize_url_for_logging(url)}")


def log_page_summary(
    logger: logging.Logger,
    resource_type: str,
    page: int,
    page_items: int,
    total_items: int
) -> None:
    """
    Log pagination progress.

    Args:
        logger: Logger instance
        resource_type: Portal resource type (itv, vod)
        page: Page index just fetched
        page_items: Items on this page
        total_items: Items accumulated so far
    """
    logger.info(
        f"[{resource_type}] Page {page}: {page_items} items (total accumulated: {total_items})"
    )
