from abc import ABC, abstractmethod
from typing import List

from ..domain.entities.swap_entity import SwapHistoryEntry


class SwapHistoryRepository(ABC):
    """Bounded, newest-first log of completed batches."""

    @abstractmethod
    async def append(self, entry: SwapHistoryEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    async def read_all(self) -> List[SwapHistoryEntry]:
        """
        Return the retained entries, newest first.
        """
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError
