from fastapi import HTTPException, Request

from ....app_context import AppContext
from ....core.exceptions import (
    PRECONDITION_ERRORS,
    NoLiquidityError,
    QuoteRequestError,
    WalletNotScannedError,
)


def get_context(request: Request) -> AppContext:
    """
    Resolve the wired AppContext from FastAPI app state.
    """
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise RuntimeError("AppContext is not initialized in app.state.ctx")
    return ctx


def http_error(exc: Exception) -> HTTPException:
    """Map a core error onto an HTTP status with a {error_type, error_msg} payload."""
    if isinstance(exc, WalletNotScannedError):
        return HTTPException(404, {"error_type": "NOT_SCANNED", "error_msg": str(exc)})
    if isinstance(exc, PRECONDITION_ERRORS):
        return HTTPException(400, {"error_type": type(exc).__name__, "error_msg": str(exc)})
    if isinstance(exc, NoLiquidityError):
        return HTTPException(422, {"error_type": "NO_LIQUIDITY", "error_msg": str(exc)})
    if isinstance(exc, QuoteRequestError):
        return HTTPException(
            502,
            {"error_type": "UPSTREAM_QUOTE", "error_msg": exc.msg, "upstream_status": exc.status_code},
        )
    return HTTPException(500, {"error_type": "INTERNAL", "error_msg": str(exc)})
