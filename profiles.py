"""Saved birth-data profiles kept in a JSON file."""

import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from pydantic import TypeAdapter, ValidationError

from exceptions import ProfileNotFoundError
from models import Profile


logger = logging.getLogger(__name__)

_profiles_adapter = TypeAdapter(List[Profile])


class ProfileStore:
    """JSON-file profile storage. Writes are serialized through a lock."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> List[Profile]:
        if not self.path.exists():
            return []
        try:
            return _profiles_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error("Could not read profiles from %s, starting empty: %s", self.path, e)
            return []

    def _write(self, profiles: List[Profile]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        tmp.write_bytes(_profiles_adapter.dump_json(profiles, indent=2))
        tmp.replace(self.path)

    def list(self) -> List[Profile]:
        return self._read()

    def get(self, profile_id: str) -> Profile:
        for profile in self._read():
            if profile.id == profile_id:
                return profile
        raise ProfileNotFoundError(f"Profile not found: {profile_id}")

    def save(self, profile: Profile) -> Profile:
        """Insert a new profile or replace the one with the same id."""
        now = datetime.now(timezone.utc)
        with self._lock:
            profiles = self._read()
            for i, existing in enumerate(profiles):
                if profile.id is not None and existing.id == profile.id:
                    saved = profile.model_copy(update={
                        'created_at': existing.created_at,
                        'updated_at': now,
                    })
                    profiles[i] = saved
                    break
            else:
                saved = profile.model_copy(update={
                    'id': profile.id or uuid.uuid4().hex,
                    'created_at': profile.created_at or now,
                    'updated_at': now,
                })
                profiles.append(saved)
            self._write(profiles)

        logger.info("Saved profile %s", saved.id)
        return saved

    def delete(self, profile_id: str) -> bool:
        with self._lock:
            profiles = self._read()
            remaining = [p for p in profiles if p.id != profile_id]
            if len(remaining) == len(profiles):
                return False
            self._write(remaining)

        logger.info("Deleted profile %s", profile_id)
        return True
