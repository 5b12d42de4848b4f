from typing import Any, Dict

from hexbytes import HexBytes
from web3 import Web3


def receipt_to_dict(receipt: Any) -> Dict[str, Any]:
    """Top-level receipt fields as plain values; hashes become 0x strings, logs are dropped."""
    out: Dict[str, Any] = {}
    for k, v in dict(receipt).items():
        if k == "logs":
            continue
        out[str(k)] = Web3.to_hex(v) if isinstance(v, (HexBytes, bytes)) else v
    return out


def receipt_ok(receipt: dict) -> bool:
    return int(receipt.get("status", 0) or 0) == 1
