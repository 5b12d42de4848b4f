from abc import ABC, abstractmethod

from ..domain.entities.token_entity import DustThresholds


class ThresholdRepository(ABC):

    @abstractmethod
    async def get(self, wallet: str) -> DustThresholds:
        """
        Thresholds stored for the wallet, or the configured default.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, wallet: str, thresholds: DustThresholds) -> None:
        raise NotImplementedError
