"""User profile lookup used to personalise chat replies.

The service never owns user records; the deployment supplies a
``ProfileStore``. ``InMemoryProfileStore`` serves tests and single-process
demos.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from health_insight.core.types import UserContext


@runtime_checkable
class ProfileStore(Protocol):
    async def get_user_context(self, user_id: str) -> UserContext | None: ...


class InMemoryProfileStore:
    def __init__(self, profiles: Mapping[str, UserContext] | None = None):
        self._profiles = dict(profiles or {})

    async def get_user_context(self, user_id: str) -> UserContext | None:
        return self._profiles.get(user_id)

    def put(self, user_id: str, context: UserContext) -> None:
        self._profiles[user_id] = context
