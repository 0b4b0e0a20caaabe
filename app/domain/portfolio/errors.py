"""
Domain-specific errors for the portfolio bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""


class PortfolioDomainError(Exception):
    """Base error for all portfolio domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class NotFoundError(PortfolioDomainError):
    """Base error for a stock, portfolio or position that does not exist."""


class StockNotFoundError(NotFoundError):
    """Raised when a ticker does not resolve to a known stock."""

    def __init__(self, ticker: str) -> None:
        super().__init__(f"Stock not found: {ticker}")
        self.ticker = ticker


class PortfolioNotFoundError(NotFoundError):
    """Raised when a portfolio cannot be found."""

    def __init__(self, portfolio_id: int) -> None:
        super().__init__(f"Portfolio not found: {portfolio_id}")
        self.portfolio_id = portfolio_id


class PositionNotFoundError(NotFoundError):
    """Raised when a portfolio holds no open position in a stock."""

    def __init__(self, portfolio_id: int, ticker: str) -> None:
        super().__init__(
            f"Position not found in portfolio {portfolio_id}: {ticker}"
        )
        self.portfolio_id = portfolio_id
        self.ticker = ticker


class TradeValidationError(PortfolioDomainError):
    """Raised when a trade or settings update carries invalid values."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid request: {reason}")
        self.reason = reason


class InsufficientSharesError(PortfolioDomainError):
    """Raised when a sell exceeds the quantity held."""

    def __init__(self, ticker: str, requested: int, held: int) -> None:
        super().__init__(
            f"Insufficient shares to sell {ticker}: requested {requested}, held {held}"
        )
        self.ticker = ticker
        self.requested = requested
        self.held = held


class UpstreamUnavailableError(PortfolioDomainError):
    """Raised when the market-data provider fails or is not configured."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Market data provider unavailable: {reason}")
        self.reason = reason
