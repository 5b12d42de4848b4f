from abc import ABC, abstractmethod
from typing import Any, Dict


class TransactionSigner(ABC):
    """
    Signing capability handed to the batch orchestrator.

    send_transaction() submits and returns the tx hash ("0x..."); it may wait
    arbitrarily long for the user and must raise UserRejectedError when the
    user declines.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        raise NotImplementedError
