"""
Services package for the portal client

This package contains the session, content, cache, link and keepalive layers.
"""
from stalker_client.services.cache_service import CacheKind, ContentCache
from stalker_client.services.content_service import ContentService, accumulate_pages
from stalker_client.services.keepalive_service import KeepaliveService
from stalker_client.services.link_service import LinkService
from stalker_client.services.profile_store import ProfileStore
from stalker_client.services.session_service import SessionManager

__all__ = [
    'CacheKind',
    'ContentCache',
    'ContentService',
    'KeepaliveService',
    'LinkService',
    'ProfileStore',
    'SessionManager',
    'accumulate_pages',
]
