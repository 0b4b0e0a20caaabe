"""
Adapter: Tinkoff Invest REST market data.

Implements the MarketDataPort against the Tinkoff Invest public REST
gateway. Every call is a JSON POST authorised with a bearer token and
goes through the QuoteCache, so identical requests inside the TTL
window reach the network once.

A cached response is served even when no token is configured; a miss
without a token, a transport error, a timeout, a non-2xx status or an
undecodable body raise UpstreamUnavailableError. A successful response
without the expected list yields an empty result.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import httpx

from app.domain.portfolio.entities import Candle, Instrument
from app.domain.portfolio.errors import UpstreamUnavailableError
from app.domain.portfolio.ports import MarketDataPort
from app.infrastructure.portfolio.quote_cache import QuoteCache, make_cache_key

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://invest-public-api.tinkoff.ru/rest"

SHARES_ENDPOINT = "/tinkoff.public.invest.api.contract.v1.InstrumentsService/Shares"
LAST_PRICES_ENDPOINT = (
    "/tinkoff.public.invest.api.contract.v1.MarketDataService/GetLastPrices"
)
CANDLES_ENDPOINT = "/tinkoff.public.invest.api.contract.v1.MarketDataService/GetCandles"

NANO = Decimal(1_000_000_000)

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def quotation_to_decimal(quotation: dict[str, Any]) -> Decimal:
    """Convert a ``{units, nano}`` quotation into an exact Decimal."""
    units = Decimal(str(quotation.get("units", "0")))
    nano = Decimal(int(quotation.get("nano", 0)))
    return units + nano / NANO


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(value: str) -> datetime:
    # fromisoformat takes at most microseconds and no "Z" before 3.11
    normalized = _FRACTION_RE.sub(r".\1", value.replace("Z", "+00:00"))
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TinkoffMarketDataAdapter(MarketDataPort):
    """Concrete adapter for the Tinkoff Invest market-data API.

    Args:
        token: Bearer token; empty when not configured.
        cache: Shared QuoteCache for request de-duplication.
        base_url: REST gateway root.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        token: Optional[str],
        cache: QuoteCache,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._token = (token or "").strip()
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        if not self._token:
            logger.warning("Tinkoff API token not configured; live market data disabled")

    def list_shares(self) -> list[Instrument]:
        data = self._request(SHARES_ENDPOINT, {})
        instruments = []
        for item in data.get("instruments") or []:
            if not item.get("figi") or not item.get("ticker"):
                continue
            instruments.append(
                Instrument(
                    figi=item["figi"],
                    ticker=item["ticker"],
                    name=item.get("name", item["ticker"]),
                    currency=str(item.get("currency", "rub")).upper(),
                    lot=int(item.get("lot") or 1),
                )
            )
        return instruments

    def get_last_prices(self, figis: list[str]) -> dict[str, Decimal]:
        data = self._request(LAST_PRICES_ENDPOINT, {"figi": list(figis)})
        prices = {}
        for item in data.get("lastPrices") or []:
            if item.get("figi") and item.get("price"):
                prices[item["figi"]] = quotation_to_decimal(item["price"])
        return prices

    def get_candles(
        self, figi: str, start: datetime, end: datetime, interval: str
    ) -> list[Candle]:
        data = self._request(
            CANDLES_ENDPOINT,
            {
                "figi": figi,
                "from": _format_time(start),
                "to": _format_time(end),
                "interval": interval,
            },
        )
        candles = [
            Candle(
                figi=figi,
                time=_parse_time(item["time"]),
                open=quotation_to_decimal(item["open"]),
                high=quotation_to_decimal(item["high"]),
                low=quotation_to_decimal(item["low"]),
                close=quotation_to_decimal(item["close"]),
                volume=int(item.get("volume", 0)),
            )
            for item in data.get("candles") or []
        ]
        return sorted(candles, key=lambda c: c.time)

    def _request(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        key = make_cache_key(endpoint, body)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Quote cache hit for %s", endpoint)
            return cached

        if not self._token:
            raise UpstreamUnavailableError("API token not configured")

        return self._cache.get_or_fetch(key, lambda: self._post(endpoint, body))

    def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self._base_url}{endpoint}", json=body, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.error("Tinkoff API request to %s failed: %s", endpoint, exc)
            raise UpstreamUnavailableError(f"request failed: {exc}") from exc

        if not response.is_success:
            logger.error(
                "Tinkoff API %s returned %s %s",
                endpoint,
                response.status_code,
                response.reason_phrase,
            )
            raise UpstreamUnavailableError(
                f"HTTP {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError("response is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError("unexpected response shape")
        return payload
