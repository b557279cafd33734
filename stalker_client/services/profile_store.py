"""
Profile store

Minimal JSON-file store for device profiles: a list of profiles plus the id
of the current one. File I/O is async (aiofiles) so the event loop is never
blocked on disk.
"""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os
import aiofiles.tempfile
from pydantic import ValidationError

from stalker_client.schemas import DeviceProfile


logger = logging.getLogger(__name__)


class ProfileStore:
    """
    Device profiles persisted as one JSON document.

    Mutations are serialized by an asyncio lock held across the whole
    read-modify-write; reads take no lock.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    async def _read(self) -> dict:
        if not self.path.exists():
            return {"profiles": [], "current_profile_id": None}
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                document = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.error(f"Error loading profiles from {self.path}: {e}")
            return {"profiles": [], "current_profile_id": None}

        if not isinstance(document, dict):
            logger.error(f"Error loading profiles from {self.path}: not a JSON object")
            return {"profiles": [], "current_profile_id": None}
        return document

    async def _write(self, profiles: list[DeviceProfile], current_profile_id: str | None) -> None:
        document = {
            "profiles": [profile.model_dump(mode="json") for profile in profiles],
            "current_profile_id": current_profile_id,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            await f.write(json.dumps(document, indent=2))

        try:
            await aiofiles.os.replace(temp_path, self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    async def list_profiles(self) -> list[DeviceProfile]:
        document = await self._read()
        profiles = []
        for raw in document.get("profiles") or []:
            try:
                profiles.append(DeviceProfile.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid stored profile: {e.error_count()} error(s)")
        return profiles

    async def get_profile(self, profile_id: str) -> DeviceProfile | None:
        for profile in await self.list_profiles():
            if profile.id == profile_id:
                return profile
        return None

    async def add_profile(self, profile: DeviceProfile) -> DeviceProfile:
        async with self._write_lock:
            document = await self._read()
            profiles = await self.list_profiles()
            if any(existing.id == profile.id for existing in profiles):
                raise ValueError(f"Profile already exists: {profile.id}")
            profiles.append(profile)
            await self._write(profiles, document.get("current_profile_id"))
        logger.info("Added profile %s (%s)", profile.id, profile.name or profile.portal_url)
        return profile

    async def update_profile(self, profile: DeviceProfile) -> bool:
        async with self._write_lock:
            document = await self._read()
            profiles = await self.list_profiles()
            for index, existing in enumerate(profiles):
                if existing.id == profile.id:
                    profiles[index] = profile
                    await self._write(profiles, document.get("current_profile_id"))
                    return True
            return False

    async def delete_profile(self, profile_id: str) -> bool:
        async with self._write_lock:
            document = await self._read()
            profiles = await self.list_profiles()
            remaining = [profile for profile in profiles if profile.id != profile_id]
            if len(remaining) == len(profiles):
                return False

            current_id = document.get("current_profile_id")
            await self._write(remaining, None if current_id == profile_id else current_id)
        logger.info("Deleted profile %s", profile_id)
        return True

    async def set_current_profile(self, profile: DeviceProfile) -> DeviceProfile:
        """Mark a profile as current and stamp its last use."""
        used = profile.model_copy(update={"last_used_at": datetime.now(timezone.utc)})
        async with self._write_lock:
            profiles = await self.list_profiles()
            profiles = [used if existing.id == used.id else existing for existing in profiles]
            if not any(existing.id == used.id for existing in profiles):
                profiles.append(used)
            await self._write(profiles, used.id)
        return used

    async def get_current_profile(self) -> DeviceProfile | None:
        document = await self._read()
        current_id = document.get("current_profile_id")
        if not current_id:
            return None
        return await self.get_profile(current_id)
