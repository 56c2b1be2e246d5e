import logging

from pydantic import TypeAdapter, ValidationError

from ..assets.model import PROFILE_FIELDS, GenerationSettings, StyleProfile
from ..exceptions import BadRequestError, NotFoundError, StorageError
from ..storage.service import PROFILES_COLLECTION, Persister

_profiles_adapter = TypeAdapter(list[StyleProfile])


class StyleProfileRegistry:
    """Named snapshots of generation settings."""

    def __init__(self, persister: Persister):
        self.persister = persister
        self._profiles: list[StyleProfile] = []

    def load(self) -> list[StyleProfile]:
        raw = self.persister.load(PROFILES_COLLECTION)
        profiles: list[StyleProfile] = []
        if isinstance(raw, list):
            try:
                profiles = _profiles_adapter.validate_python(raw)
            except ValidationError as e:
                logging.error(f"Stored style profiles are malformed, starting fresh: {e}")
        self._profiles = profiles
        return self.all()

    def all(self) -> list[StyleProfile]:
        return list(self._profiles)

    def get(self, profile_id: str) -> StyleProfile:
        profile = next((p for p in self._profiles if p.id == profile_id), None)
        if profile is None:
            raise NotFoundError("Style profile")
        return profile

    def save_from(self, name: str, settings: GenerationSettings) -> StyleProfile:
        """Snapshot the profile fields of ``settings`` under ``name``."""
        name = name.strip()
        if not name:
            raise BadRequestError("Profile name cannot be empty.")
        profile = StyleProfile(
            name=name, **{field: getattr(settings, field) for field in PROFILE_FIELDS}
        )
        self._commit(self._profiles + [profile])
        return profile

    def delete(self, profile_id: str) -> None:
        self.get(profile_id)
        self._commit([p for p in self._profiles if p.id != profile_id])

    def apply(self, profile_id: str, settings: GenerationSettings) -> GenerationSettings:
        """Copy the profile's fields into a new settings object."""
        profile = self.get(profile_id)
        return settings.model_copy(
            update={field: getattr(profile, field) for field in PROFILE_FIELDS}
        )

    def _commit(self, profiles: list[StyleProfile]) -> None:
        if not self.persister.save(PROFILES_COLLECTION, profiles):
            raise StorageError("Failed to save style profiles.")
        self._profiles = profiles
