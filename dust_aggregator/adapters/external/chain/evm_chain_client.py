import asyncio
import logging
from typing import Any, Dict, Optional

from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from ....core.domain.entities.token_entity import TokenMetadata
from .utils import receipt_to_dict

# Minimal ABI fragments, only what is used
ABI_ERC20 = [
  {"name":"name","outputs":[{"type":"string"}],"inputs":[],"stateMutability":"view","type":"function"},
  {"name":"symbol","outputs":[{"type":"string"}],"inputs":[],"stateMutability":"view","type":"function"},
  {"name":"decimals","outputs":[{"type":"uint8"}],"inputs":[],"stateMutability":"view","type":"function"},
  {"name":"balanceOf","outputs":[{"type":"uint256"}],"inputs":[{"type":"address","name":"owner"}],"stateMutability":"view","type":"function"},
  {"name":"allowance","outputs":[{"type":"uint256"}],
   "inputs":[{"type":"address","name":"owner"},{"type":"address","name":"spender"}],
   "stateMutability":"view","type":"function"},
  {"name":"approve","outputs":[{"type":"bool"}],
   "inputs":[{"type":"address","name":"spender"},{"type":"uint256","name":"amount"}],
   "stateMutability":"nonpayable","type":"function"},
]


class EvmChainClient:
    """
    Async JSON-RPC reads against one chain (balances, ERC-20 metadata,
    allowances, receipts). The provider is shared and safe for concurrent reads.

    No timeouts here: callers on the discovery side wrap calls in wait_for,
    the orchestrator intentionally waits as long as the chain needs.
    """

    def __init__(self, rpc_url: str, receipt_poll_sec: float = 2.0, w3: Optional[AsyncWeb3] = None):
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._poll = receipt_poll_sec
        self._contracts: Dict[str, Any] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def erc20(self, addr: str):
        key = addr.lower()
        c = self._contracts.get(key)
        if c is None:
            c = self.w3.eth.contract(address=Web3.to_checksum_address(addr), abi=ABI_ERC20)
            self._contracts[key] = c
        return c

    # -------- basic reads --------

    async def get_native_balance(self, owner: str) -> int:
        return int(await self.w3.eth.get_balance(Web3.to_checksum_address(owner)))

    async def get_erc20_balance(self, token: str, owner: str) -> int:
        return int(await self.erc20(token).functions.balanceOf(Web3.to_checksum_address(owner)).call())

    async def get_allowance(self, token: str, owner: str, spender: str) -> int:
        fn = self.erc20(token).functions.allowance(
            Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
        )
        return int(await fn.call())

    async def get_gas_price(self) -> int:
        return int(await self.w3.eth.gas_price)

    async def get_erc20_metadata(self, token: str) -> TokenMetadata:
        """
        name/symbol/decimals read independently: a contract that reverts on one of
        them (not fully ERC-20 compliant) still yields the others.
        """
        fns = self.erc20(token).functions
        name, symbol, decimals = await asyncio.gather(
            fns.name().call(), fns.symbol().call(), fns.decimals().call(),
            return_exceptions=True,
        )
        return TokenMetadata(
            name=None if isinstance(name, BaseException) else str(name),
            symbol=None if isinstance(symbol, BaseException) else str(symbol),
            decimals=None if isinstance(decimals, BaseException) else int(decimals),
        )

    # -------- tx helpers --------

    def build_approve_tx(self, token: str, spender: str, amount: int) -> Dict[str, Any]:
        data = self.erc20(token).encode_abi("approve", args=[Web3.to_checksum_address(spender), int(amount)])
        return {"to": Web3.to_checksum_address(token), "data": data, "value": 0}

    async def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """Poll until mined. No upper bound on purpose."""
        while True:
            try:
                rcpt = await self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                rcpt = None
            if rcpt is not None:
                return receipt_to_dict(rcpt)
            await asyncio.sleep(self._poll)
