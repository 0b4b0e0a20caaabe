"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses share the ``{"message", "detail"}`` shape of
the ErrorResponse schema.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.domain.portfolio.errors import (
    InsufficientSharesError,
    NotFoundError,
    PortfolioDomainError,
    TradeValidationError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503


def error_response(status_code: int, message: str, detail: Any = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, Any] = {"message": message}
    if detail is not None:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle unknown stocks, portfolios and positions."""
        logger.warning("Not found: %s", exc.message)
        return error_response(HTTP_404, exc.message)

    @app.exception_handler(TradeValidationError)
    async def handle_trade_validation(
        _request: Request, exc: TradeValidationError
    ) -> JSONResponse:
        """Handle invalid trade or settings values."""
        logger.warning("Rejected request: %s", exc.reason)
        return error_response(HTTP_400, "Invalid request data", exc.reason)

    @app.exception_handler(InsufficientSharesError)
    async def handle_insufficient_shares(
        _request: Request, exc: InsufficientSharesError
    ) -> JSONResponse:
        """Handle sells larger than the quantity held."""
        logger.warning(
            "Insufficient shares: %s requested=%d held=%d",
            exc.ticker,
            exc.requested,
            exc.held,
        )
        return error_response(
            HTTP_400,
            "Insufficient shares to sell",
            {"ticker": exc.ticker, "requested": exc.requested, "held": exc.held},
        )

    @app.exception_handler(UpstreamUnavailableError)
    async def handle_upstream_unavailable(
        _request: Request, exc: UpstreamUnavailableError
    ) -> JSONResponse:
        """Handle market-data provider failures."""
        logger.error("Market data provider unavailable: %s", exc.reason)
        return error_response(HTTP_503, "Market data provider unavailable")

    @app.exception_handler(PortfolioDomainError)
    async def handle_portfolio_domain(
        _request: Request, exc: PortfolioDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled portfolio domain errors."""
        logger.error("Unhandled portfolio domain error: %s", exc.message)
        return error_response(HTTP_500, "Internal server error")

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed request bodies, paths and query strings."""
        logger.warning("Request validation failed: %d errors", len(exc.errors()))
        return error_response(
            HTTP_422, "Invalid request data", jsonable_encoder(exc.errors())
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Keep framework-raised HTTP errors in the shared error shape."""
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return error_response(HTTP_500, "Internal server error")
