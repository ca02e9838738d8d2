"""Read-only repository protocols used by providers."""

from typing import Protocol

from screenlabel.models.model_memory import CapturedEvent, Memory


class MemoryRepository(Protocol):
    """Source of user memories (projects, preferences, tracked addictions)."""

    def get_memories(self) -> list[Memory]:
        """Return all memories, in any order."""
        ...


class EventRepository(Protocol):
    """Source of previously stored captures."""

    def get_events(
        self,
        url_host: str | None = None,
        app_bundle_id: str | None = None,
        limit: int | None = None,
    ) -> list[CapturedEvent]:
        """Return captures matching the filters, newest first.

        Args:
            url_host: Only captures from this site.
            app_bundle_id: Only captures from this app.
            limit: Maximum number of captures to return.

        Returns:
            Matching captures.
        """
        ...
