"""HTTP surface."""

from .app import create_app, status_for
from .profiles import InMemoryProfileStore, ProfileStore

__all__ = ["InMemoryProfileStore", "ProfileStore", "create_app", "status_for"]
