"""
Swap history as a JSON array (<DATA_ROOT>/history/swap_history.json).
Stored newest first, trimmed to the most recent `limit` entries.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from ....core.domain.entities.swap_entity import SwapHistoryEntry
from ....core.repositories.swap_history_repository import SwapHistoryRepository


class SwapHistoryRepositoryFile(SwapHistoryRepository):

    FILENAME = "swap_history.json"

    def __init__(self, data_root: str, limit: int = 20):
        self._dir = Path(data_root) / "history"
        self._path = self._dir / self.FILENAME
        self._limit = max(1, int(limit))
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def _load(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text())
        except (OSError, ValueError) as exc:
            self._logger.warning("unreadable history file %s, starting empty: %s", self._path, exc)
            return []
        return data if isinstance(data, list) else []

    def _save(self, items: List[Dict[str, Any]]) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(items, indent=2))
        tmp.replace(self._path)

    async def append(self, entry: SwapHistoryEntry) -> None:
        async with self._lock:
            items = self._load()
            items.insert(0, entry.model_dump(mode="json"))
            self._save(items[: self._limit])

    async def read_all(self) -> List[SwapHistoryEntry]:
        out: List[SwapHistoryEntry] = []
        for raw in self._load():
            try:
                out.append(SwapHistoryEntry.model_validate(raw))
            except ValidationError as exc:
                self._logger.warning("skipping malformed history entry: %s", exc)
        return out

    async def clear(self) -> None:
        async with self._lock:
            self._save([])
