import logging
from typing import Any, List, Optional, Set

import httpx
from pydantic import BaseModel, Field, ValidationError


class _TokenTransfer(BaseModel):
    contractAddress: str
    tokenSymbol: Optional[str] = None
    tokenDecimal: Optional[str] = None


class _ExplorerResponse(BaseModel):
    status: Optional[str] = None
    message: Optional[str] = None
    result: Any = Field(default_factory=list)


class ExplorerClient:
    """
    Etherscan v2 (multichain) token transfer history.
    Used to recover contracts the balance indexer missed.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        chain_id: int,
        timeout_sec: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._api_key = api_key
        self._chain_id = int(chain_id)
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    async def get_token_transfers(self, owner: str, page: int, offset: int) -> Optional[List[str]]:
        """
        Contract addresses (lowercase, one per transfer) of one page of `tokentx`.
        None on failure; [] when the account has no (more) transfers.
        """
        params = {
            "chainid": self._chain_id,
            "module": "account",
            "action": "tokentx",
            "address": owner,
            "page": page,
            "offset": offset,
            "sort": "desc",
            "apikey": self._api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.get(self._base_url, params=params)
                if r.status_code != 200:
                    self._logger.warning("tokentx HTTP %s", r.status_code)
                    return None
                body = _ExplorerResponse.model_validate(r.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            self._logger.warning("tokentx page %s failed: %s", page, exc)
            return None

        if body.status != "1":
            # "No transactions found" comes back as status 0 with an empty list
            if isinstance(body.result, list) and not body.result:
                return []
            self._logger.warning("tokentx error: %s %s", body.message, str(body.result)[:200])
            return None

        out: List[str] = []
        for item in body.result or []:
            try:
                out.append(_TokenTransfer.model_validate(item).contractAddress.lower())
            except ValidationError:
                continue
        return out

    async def token_transfer_contracts(self, owner: str, max_pages: int = 10, page_size: int = 1000) -> Optional[Set[str]]:
        """
        Page through transfer history until a short page or the page cap and
        collect the distinct contracts. A failing later page keeps what was collected.
        """
        contracts: Set[str] = set()
        for page in range(1, max(1, int(max_pages)) + 1):
            rows = await self.get_token_transfers(owner, page, page_size)
            if rows is None:
                return contracts if page > 1 else None
            contracts.update(rows)
            if len(rows) < page_size:
                break
        return contracts
