"""
Portal client errors

Every failure raised by the client derives from PortalClientError so callers
can catch the whole family in one place.
"""


class PortalClientError(Exception):
    """Base class for all portal client errors"""

    code = "PORTAL_CLIENT_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class FetchError(PortalClientError):
    """Portal request failed"""
    code = "FETCH_FAILED"


class NetworkError(FetchError):
    """Network error while talking to the portal"""
    code = "NETWORK_ERROR"


class ProtocolError(FetchError):
    """Invalid response format"""
    code = "PROTOCOL_ERROR"


class AuthError(PortalClientError):
    """Portal authentication failed"""
    code = "AUTH_FAILED"


REJECTION_GUIDANCE = (
    "Portal authentication failed. This could be due to:\n"
    "- MAC address already in use\n"
    "- Portal blocking automated access\n"
    "- Invalid MAC address format\n"
    "- Server rate limiting\n\n"
    "Try waiting 30 seconds and authenticate again."
)


class PortalRejected(AuthError):
    """Handshake rejected by the portal"""
    code = "PORTAL_REJECTED"

    def __init__(self, message: str | None = None):
        super().__init__(message or REJECTION_GUIDANCE)


class PortalError(AuthError):
    """Portal returned an explicit error"""
    code = "PORTAL_ERROR"

    def __init__(self, message: str):
        super().__init__(f"Portal error: {message}")
        self.portal_message = message


class NoToken(AuthError):
    """No token received from portal. Response may be invalid."""
    code = "NO_TOKEN"


class DeviceConflict(AuthError):
    """Device registration issue"""
    code = "DEVICE_CONFLICT"

    def __init__(self, message: str):
        super().__init__(f"Device registration issue: {message}")
        self.portal_message = message


class InvalidProfileResponse(AuthError):
    """Invalid profile response - no user ID returned"""
    code = "INVALID_PROFILE_RESPONSE"


class NoActiveProfile(PortalClientError):
    """No active profile. Authenticate before calling the portal."""
    code = "NO_ACTIVE_PROFILE"


class ResolveError(PortalClientError):
    """Stream link could not be extracted"""
    code = "RESOLVE_FAILED"
