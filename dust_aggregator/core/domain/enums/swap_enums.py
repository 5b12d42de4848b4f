from enum import Enum


class SwapStatus(str, Enum):
    """
    Per-token lifecycle inside a batch. Transitions are strictly sequential:

      pending -> checking -> [approved] -> swapping -> success
                     \\________________________________-> failed
    """
    PENDING = "pending"       # every selected token at batch start
    CHECKING = "checking"     # feasibility check in flight
    APPROVED = "approved"     # approval tx submitted and confirmed
    SWAPPING = "swapping"     # swap tx submitted, waiting receipt
    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(str, Enum):
    CANCELLED = "cancelled"                  # user rejected a signature request
    NO_LIQUIDITY = "no_liquidity"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REVERTED = "reverted"                    # mined with status == 0
    FAILED = "failed"                        # anything else
