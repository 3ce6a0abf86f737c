"""Versioned (de)serialization of the profile and RL state.

Each aggregate is stored under its own key as::

    {"version": 1, "data": {...}}

A missing key means "no state yet" and yields a fresh object. Anything else
that does not validate against the current schema raises ProfileSchemaError;
nothing is silently defaulted.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from neurotutor.engine.models import UserProfile
from neurotutor.engine.reinforcement import RLState
from neurotutor.errors import ProfileSchemaError
from neurotutor.state.store import KeyValueStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
PROFILE_KEY = "profile"
RL_STATE_KEY = "rl-state"

T = TypeVar("T")


class _VersionedRepository(Generic[T]):
    key: str
    model: type

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._adapter: TypeAdapter[T] = TypeAdapter(self.model)

    def fresh(self) -> T:
        return self.model()

    def dump(self, value: T) -> dict[str, Any]:
        return {
            "version": SCHEMA_VERSION,
            "data": self._adapter.dump_python(value, mode="json"),
        }

    def parse(self, blob: Any) -> T:
        if not isinstance(blob, dict) or "version" not in blob or "data" not in blob:
            raise ProfileSchemaError(self.key, "expected a versioned envelope")
        if blob["version"] != SCHEMA_VERSION:
            raise ProfileSchemaError(
                self.key, f"schema version {blob['version']!r}, expected {SCHEMA_VERSION}",
            )
        try:
            return self._adapter.validate_python(blob["data"])
        except ValidationError as e:
            raise ProfileSchemaError(self.key, str(e)) from e

    def load(self) -> T:
        blob = self.store.get(self.key)
        if blob is None:
            logger.info("No stored %s, starting fresh", self.key)
            return self.fresh()
        return self.parse(blob)

    def save(self, value: T) -> None:
        self.store.set(self.key, self.dump(value))

    def reset(self) -> None:
        self.store.delete(self.key)


class ProfileRepository(_VersionedRepository[UserProfile]):
    key = PROFILE_KEY
    model = UserProfile


class RLStateRepository(_VersionedRepository[RLState]):
    key = RL_STATE_KEY
    model = RLState
