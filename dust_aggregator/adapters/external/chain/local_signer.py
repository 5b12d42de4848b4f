import logging
from typing import Any, Dict

from eth_account import Account
from web3 import AsyncWeb3, Web3

from ....core.services.transaction_signer import TransactionSigner


class LocalAccountSigner(TransactionSigner):
    """
    Server-side signer backed by a private key.

    Responsibilities:
    - Fill from/nonce/chainId.
    - Pad the node gas estimate (x1.25 + 10k) when the caller gave no gas limit.
    - Fallback to legacy gasPrice when no EIP-1559 fields are given.
    - Sign and broadcast; receipt waiting is the caller's job.
    """

    def __init__(self, w3: AsyncWeb3, private_key: str):
        self.w3 = w3
        self._pk = private_key
        self._account = Account.from_key(private_key)
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def address(self) -> str:
        return self._account.address

    # ---------- internal helpers ----------

    async def _estimate_buffered(self, tx: dict) -> int:
        """
        Calls estimateGas(tx) and adds a 25% + 10k buffer.
        Falls back to a static 300k if node estimation fails.
        """
        try:
            base_estimate = int(await self.w3.eth.estimate_gas(tx))
        except Exception as exc:
            self._logger.warning("estimate_gas failed, using 300k: %s", exc)
            base_estimate = 300_000
        return int(base_estimate * 1.25) + 10_000

    async def _finalize_fee_fields(self, tx: dict) -> dict:
        if "maxFeePerGas" in tx or "maxPriorityFeePerGas" in tx:
            return tx
        if "gasPrice" not in tx:
            tx["gasPrice"] = int(await self.w3.eth.gas_price)
        return tx

    # ---------- public API ----------

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        full = {
            "from": self._account.address,
            "to": Web3.to_checksum_address(tx["to"]),
            "data": tx.get("data", "0x"),
            "value": int(tx.get("value") or 0),
            "nonce": await self.w3.eth.get_transaction_count(self._account.address, "pending"),
            "chainId": int(await self.w3.eth.chain_id),
        }
        if tx.get("gas"):
            full["gas"] = int(tx["gas"])
        else:
            full["gas"] = await self._estimate_buffered(full)
        full = await self._finalize_fee_fields(full)

        signed = Account.sign_transaction(full, self._pk)
        txh = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash = Web3.to_hex(txh)
        self._logger.info("broadcast tx %s (nonce=%s)", tx_hash, full["nonce"])
        return tx_hash
