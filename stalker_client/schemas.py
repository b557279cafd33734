from pydantic import BaseModel, ConfigDict, Field, field_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from datetime import datetime, timezone
from uuid import uuid4
import random
import re


MAC_PATTERN = re.compile(r"^([0-9A-F]{2}:){5}[0-9A-F]{2}$")
MAG_MAC_PREFIX = "00:1A:79"


def generate_mac_address() -> str:
    """Random MAC address with the MAG vendor prefix"""
    suffix = ":".join(f"{random.randint(0, 255):02X}" for _ in range(3))
    return f"{MAG_MAC_PREFIX}:{suffix}"


class DeviceProfile(BaseModel):
    """Device identity presented to the portal.

    Owned by the profile store; a session borrows it unchanged.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="Profile ID (UUID)")
    name: str = Field("", description="Display name of the profile")
    portal_url: str = Field(..., description="Portal base URL (e.g., 'http://host:8080/stalker_portal')")
    mac_address: str = Field(default_factory=generate_mac_address, description="MAC address, XX:XX:XX:XX:XX:XX")
    serial_number: str | None = Field(None, description="STB serial number (sn)")
    device_id: str | None = Field(None, description="Device ID")
    device_id2: str | None = Field(None, description="Device ID 2")
    signature: str | None = Field(None, description="Device signature")
    stb_type: str = Field("MAG254", description="STB model reported in X-User-Agent")
    timezone: str = Field("UTC", description="Timezone sent in the portal cookie")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_used_at: datetime | None = None

    @field_validator("portal_url")
    @classmethod
    def validate_portal_url(cls, v: str) -> str:
        """Portal URL must be HTTP/HTTPS"""
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"Portal URL must be HTTP/HTTPS: {v}")
        return v

    @field_validator("mac_address")
    @classmethod
    def validate_mac_address(cls, v: str) -> str:
        """Validate and upper-case the MAC address"""
        normalized = v.strip().upper()
        if not MAC_PATTERN.match(normalized):
            raise ValueError(f"Invalid MAC address: {v}. Expected format XX:XX:XX:XX:XX:XX")
        return normalized

    @field_validator("serial_number", "device_id", "device_id2", "signature")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone string"""
        if v == "UTC":
            return v
        try:
            ZoneInfo(v)
            return v
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone (e.g., 'Europe/London') or 'UTC'")

    def device_params(self) -> dict[str, str]:
        """Optional get_profile parameters, only the ones that are set"""
        params = {}
        for key, value in (
            ("sn", self.serial_number),
            ("device_id", self.device_id),
            ("device_id2", self.device_id2),
            ("signature", self.signature),
        ):
            if value:
                params[key] = value
        return params


class Genre(BaseModel):
    """Channel genre or VOD category"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Genre ID ('*' means all)")
    title: str = Field("", description="Display title")


class Channel(BaseModel):
    """Live TV channel"""
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str | None = None
    number: str | None = Field(None, description="Display number")
    cmd: str | None = Field(None, description="Command string passed to create_link")
    logo: str | None = Field(None, description="Absolute http(s) logo URL")
    hd: int | None = None
    lock: int | None = None
    fav: int | None = None
    genre_title: str | None = None
    has_archive: bool | None = None


class VodItem(BaseModel):
    """Video-on-demand item"""
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str | None = None
    original_name: str | None = None
    description: str | None = None
    cmd: str | None = Field(None, description="Command string passed to create_link")
    screenshot: str | None = Field(None, description="Absolute http(s) screenshot URL")
    year: str | None = None
    director: str | None = None
    actors: str | None = None
    rating: str | None = None
    duration: str | None = None
    hd: int | None = None
    fav: int | None = None
    category: str | None = None


class ProfileCreateRequest(BaseModel):
    """New device profile"""
    name: str = ""
    portal_url: str
    mac_address: str | None = Field(None, description="Generated when omitted")
    serial_number: str | None = None
    device_id: str | None = None
    device_id2: str | None = None
    signature: str | None = None
    stb_type: str = "MAG254"
    timezone: str = "UTC"

    def to_profile(self) -> DeviceProfile:
        data = self.model_dump(exclude_none=True)
        return DeviceProfile(**data)


class AuthRequest(BaseModel):
    """Authenticate against a stored profile"""
    profile_id: str = Field(..., description="ID of a stored profile")


class AuthResponse(BaseModel):
    status: str
    profile_id: str
    portal_url: str


class LinkRequest(BaseModel):
    """Resolve a content command into a playable URL"""
    cmd: str = Field(..., min_length=1, description="Command string of a channel or VOD item")
    is_vod: bool = False


class LinkResponse(BaseModel):
    url: str


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'NETWORK_ERROR', 'DEVICE_CONFLICT')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class StandardErrorResponse(BaseModel):
    """Standardized error response for all endpoints"""
    status: str = Field("error", description="Status indicator")
    timestamp: str = Field(..., description="ISO8601 timestamp of error")
    error: ErrorDetail = Field(..., description="Error details")
