"""
Turns any failure into a short, human-readable message plus a FailureKind.
Raw stack traces or upstream JSON never reach the caller.
"""

import asyncio
import re
from typing import Tuple

from ..domain.enums.swap_enums import FailureKind
from ..exceptions import (
    NoLiquidityError,
    QuoteRequestError,
    SellAmountTooSmallError,
    TransactionRevertedError,
    UserRejectedError,
)

MSG_CANCELLED = "Transaction was cancelled. Please try again when ready."
MSG_NO_LIQUIDITY = "No liquidity available for this token pair."
MSG_INSUFFICIENT_FUNDS = "Insufficient funds for this transaction."
MSG_INSUFFICIENT_GAS = "Insufficient gas. Please ensure you have enough ETH for gas fees."
MSG_REVERTED = "Transaction reverted on-chain. Please try again or check your balance."
MSG_TIMEOUT = "Request timed out. Please try again."
MSG_NETWORK = "Network error. Please check your connection and try again."
MSG_TOO_SMALL = "Amount is too small to swap."
MSG_GENERIC = "Transaction failed. Please check your wallet and try again."
MSG_UNKNOWN = "An unknown error occurred. Please try again."

_MAX_MESSAGE_LEN = 200


def humanize_error(exc: BaseException | str | None) -> Tuple[FailureKind, str]:
    if exc is None:
        return FailureKind.FAILED, MSG_UNKNOWN

    if isinstance(exc, UserRejectedError):
        return FailureKind.CANCELLED, MSG_CANCELLED
    if isinstance(exc, NoLiquidityError):
        return FailureKind.NO_LIQUIDITY, MSG_NO_LIQUIDITY
    if isinstance(exc, TransactionRevertedError):
        return FailureKind.REVERTED, MSG_REVERTED
    if isinstance(exc, SellAmountTooSmallError):
        return FailureKind.FAILED, MSG_TOO_SMALL
    if isinstance(exc, asyncio.TimeoutError):
        return FailureKind.FAILED, MSG_TIMEOUT

    message = exc if isinstance(exc, str) else str(exc)
    if isinstance(exc, QuoteRequestError) and exc.msg:
        message = exc.msg
    if not message:
        return FailureKind.FAILED, MSG_UNKNOWN

    low = message.lower()
    if "user rejected" in low or "user denied" in low or "rejected the request" in low:
        return FailureKind.CANCELLED, MSG_CANCELLED
    if "insufficient funds" in low:
        return FailureKind.INSUFFICIENT_FUNDS, MSG_INSUFFICIENT_FUNDS
    if "gas" in low and ("insufficient" in low or "out of gas" in low or "intrinsic" in low):
        return FailureKind.INSUFFICIENT_FUNDS, MSG_INSUFFICIENT_GAS
    if "liquidity" in low:
        return FailureKind.NO_LIQUIDITY, MSG_NO_LIQUIDITY
    if "revert" in low:
        return FailureKind.REVERTED, MSG_REVERTED
    if "timeout" in low or "timed out" in low:
        return FailureKind.FAILED, MSG_TIMEOUT
    if "network" in low or "connection" in low:
        return FailureKind.FAILED, MSG_NETWORK

    if len(message) > _MAX_MESSAGE_LEN or message.lstrip().startswith(("{", "[")):
        m = re.search(r"reason[\"']?[:\s]+[\"']?([^,\n}\"']+)", message, re.IGNORECASE)
        if m:
            return FailureKind.FAILED, f"Transaction failed: {m.group(1).strip()}"
        return FailureKind.FAILED, MSG_GENERIC

    return FailureKind.FAILED, message
