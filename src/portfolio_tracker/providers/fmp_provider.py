"""Financial Modeling Prep quote source over its REST API."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from portfolio_tracker.core.exceptions import (
    MalformedResponseError,
    ProviderUnavailableError,
    RateLimitedError,
    SymbolNotFoundError,
)
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.domain.models import SecurityType
from portfolio_tracker.domain.views import Quote, SecurityMetadata

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://financialmodelingprep.com/api/v3"


class FinancialModelingPrepSource:
    """
    Quote source backed by financialmodelingprep.com.

    ``/quote/{symbol}`` supplies prices and ``/profile/{symbol}`` metadata.
    Both answer with a JSON list that is empty for unknown symbols.
    """

    name = "fmp"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def fetch_quote(self, symbol: str) -> Quote:
        row = self._get_first(f"quote/{symbol}", symbol)
        return Quote(
            symbol=symbol,
            price=self._decimal_field(row, "price", symbol),
            as_of=now_eastern(),
            source=self.name,
        )

    def fetch_metadata(self, symbol: str) -> SecurityMetadata:
        row = self._get_first(f"profile/{symbol}", symbol)
        name = row.get("companyName")
        if not name:
            raise MalformedResponseError(self.name, symbol, "profile without companyName")
        if row.get("isEtf"):
            security_type = SecurityType.ETF
        elif row.get("isFund"):
            security_type = SecurityType.FUND
        else:
            security_type = SecurityType.STOCK
        return SecurityMetadata(
            symbol=symbol,
            name=str(name),
            exchange=row.get("exchangeShortName") or row.get("exchange"),
            currency=str(row.get("currency") or "USD").upper(),
            security_type=security_type,
            as_of=now_eastern(),
            source=self.name,
        )

    def close(self) -> None:
        self._client.close()

    def _get_first(self, path: str, symbol: str) -> dict[str, Any]:
        params = {"apikey": self._api_key} if self._api_key else {}
        try:
            response = self._client.get(f"{self._base_url}/{path}", params=params)
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(self.name, symbol, str(exc)) from exc

        if response.status_code == 429:
            raise RateLimitedError(self.name, symbol, "HTTP 429")
        if response.status_code == 404:
            raise SymbolNotFoundError(self.name, symbol, "HTTP 404")
        if response.status_code >= 500:
            raise ProviderUnavailableError(self.name, symbol, f"HTTP {response.status_code}")
        if response.status_code >= 400:
            # 401/403 mean a bad or exhausted key; nothing a retry can fix
            raise ProviderUnavailableError(self.name, symbol, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(self.name, symbol, "response is not JSON") from exc

        if isinstance(payload, dict) and "Error Message" in payload:
            logger.warning("FMP error for %s: %s", symbol, payload["Error Message"])
            raise ProviderUnavailableError(self.name, symbol, str(payload["Error Message"]))
        if not isinstance(payload, list):
            raise MalformedResponseError(self.name, symbol, f"expected list, got {type(payload).__name__}")
        if not payload:
            raise SymbolNotFoundError(self.name, symbol, "empty result")
        if not isinstance(payload[0], dict):
            raise MalformedResponseError(self.name, symbol, "result row is not an object")
        return payload[0]

    def _decimal_field(self, row: dict[str, Any], key: str, symbol: str) -> Decimal:
        value = row.get(key)
        try:
            result = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise MalformedResponseError(self.name, symbol, f"bad {key} {value!r}") from exc
        if value is None or not result.is_finite() or result < 0:
            raise MalformedResponseError(self.name, symbol, f"bad {key} {value!r}")
        return result
