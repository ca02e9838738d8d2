"""JSON-file backed memory and event repository.

Directory structure:
    data/
    ├── memories.json   # list of Memory objects
    └── events.json     # list of CapturedEvent objects
"""

import json
import logging
from pathlib import Path

from screenlabel.consts import DEFAULT_DATA_DIR
from screenlabel.models.model_memory import CapturedEvent, Memory

logger = logging.getLogger(__name__)

MEMORIES_FILE = "memories.json"
EVENTS_FILE = "events.json"


class InMemoryRepository:
    """Memory and event repository over plain lists."""

    def __init__(
        self,
        memories: list[Memory] | None = None,
        events: list[CapturedEvent] | None = None,
    ):
        self._memories = list(memories or [])
        self._events = sorted(events or [], key=lambda e: e.timestamp, reverse=True)

    def get_memories(self) -> list[Memory]:
        return list(self._memories)

    def get_events(
        self,
        url_host: str | None = None,
        app_bundle_id: str | None = None,
        limit: int | None = None,
    ) -> list[CapturedEvent]:
        matched = [
            e
            for e in self._events
            if (url_host is None or e.url_host == url_host)
            and (app_bundle_id is None or e.app_bundle_id == app_bundle_id)
        ]
        return matched[:limit] if limit is not None else matched


class FileRepository(InMemoryRepository):
    """Repository loaded once from JSON files in a data directory."""

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR):
        """Load memories and events from data_dir.

        Missing files are treated as empty.

        Args:
            data_dir: Directory holding memories.json and events.json.
        """
        self.data_dir = Path(data_dir)
        memories = [Memory.model_validate(m) for m in self._read_list(MEMORIES_FILE)]
        events = [CapturedEvent.model_validate(e) for e in self._read_list(EVENTS_FILE)]
        logger.debug(f"Loaded {len(memories)} memories and {len(events)} events from {self.data_dir}")
        super().__init__(memories=memories, events=events)

    def _read_list(self, filename: str) -> list[dict]:
        path = self.data_dir / filename
        if not path.exists():
            return []
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list")
        return data
