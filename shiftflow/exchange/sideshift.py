"""SideShift v2 REST API client."""

import json
import socket
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote as url_quote
from urllib.request import Request, urlopen

import structlog

from ..config.defaults import ExchangeParams
from ..errors import (
    ExchangeAuthenticationError,
    ExchangeError,
    OrderCancellationError,
    OrderCreationError,
    OrderStatusError,
    QuoteError,
    RateLimitedError,
    RateUnavailableError,
)
from ..models.exchange import Quote, ShiftOrder, ShiftStatusReport
from .base import ExchangeClient, RateProvider

logger = structlog.get_logger(__name__)

USER_AGENT = "shiftflow/0.1"

# Placeholder values shipped in sample env files
_PLACEHOLDER_AFFILIATE_IDS = {"", "YOUR_AFFILIATE_ID"}


class SideShiftClient(RateProvider, ExchangeClient):
    """
    HTTP adapter for the SideShift API.

    Status mapping:
    - 400: permanent request error carrying the API's message
    - 401: authentication error
    - 429: rate limited, retryable
    - 5xx and network failures: retryable
    """

    def __init__(self, config: Optional[ExchangeParams] = None):
        self.config = config or ExchangeParams()
        self.base_url = self.config.base_url.rstrip("/")
        self.logger = logger

    @property
    def affiliate_id(self) -> Optional[str]:
        affiliate_id = (self.config.affiliate_id or "").strip()
        if affiliate_id in _PLACEHOLDER_AFFILIATE_IDS:
            return None
        return affiliate_id

    def fetch_rate(self, from_coin: str, to_coin: str) -> float:
        path = f"/pair/{url_quote(from_coin.lower())}/{url_quote(to_coin.lower())}"
        payload = self._request(
            "GET", path,
            error_cls=RateUnavailableError,
            error_kwargs={"from_coin": from_coin, "to_coin": to_coin},
        )

        try:
            rate = float(payload["rate"])
        except (KeyError, TypeError, ValueError) as e:
            raise RateUnavailableError(
                f"No usable rate for {from_coin}/{to_coin}",
                from_coin=from_coin,
                to_coin=to_coin,
                context={"payload": payload},
            ) from e

        self.logger.debug("Rate fetched", from_coin=from_coin, to_coin=to_coin, rate=rate)
        return rate

    def request_quote(
        self,
        from_coin: str,
        to_coin: str,
        amount: str,
        from_network: Optional[str] = None,
        to_network: Optional[str] = None,
    ) -> Quote:
        body: dict[str, Any] = {
            "depositCoin": from_coin,
            "settleCoin": to_coin,
            "depositAmount": str(amount),
        }
        if from_network:
            body["depositNetwork"] = from_network
        if to_network:
            body["settleNetwork"] = to_network
        if self.affiliate_id:
            body["affiliateId"] = self.affiliate_id
        else:
            self.logger.warning("No affiliate id configured; shift creation will be refused")

        payload = self._request("POST", "/quotes", body=body, error_cls=QuoteError)
        quote = Quote.from_api(payload)

        self.logger.info(
            "Quote received",
            quote_id=quote.id,
            from_coin=quote.from_coin,
            to_coin=quote.to_coin,
            rate=quote.rate,
        )
        return quote

    def create_order(
        self,
        quote_id: str,
        destination_address: str,
        refund_address: Optional[str] = None,
    ) -> ShiftOrder:
        if not self.affiliate_id:
            raise OrderCreationError(
                "Affiliate id is not configured; cannot create shift",
                quote_id=quote_id,
            )

        body: dict[str, Any] = {
            "quoteId": quote_id,
            "settleAddress": destination_address,
            "affiliateId": self.affiliate_id,
        }
        if refund_address:
            body["refundAddress"] = refund_address

        payload = self._request(
            "POST", "/shifts/fixed",
            body=body,
            error_cls=OrderCreationError,
            error_kwargs={"quote_id": quote_id},
        )
        order = ShiftOrder.from_api(payload)

        self.logger.info("Shift created", shift_id=order.id, quote_id=quote_id, status=order.status)
        return order

    def poll_order_status(self, order_id: str) -> ShiftStatusReport:
        payload = self._request(
            "GET", f"/shifts/{url_quote(order_id)}",
            error_cls=OrderStatusError,
            error_kwargs={"order_id": order_id},
        )
        return ShiftStatusReport.from_api(payload)

    def cancel_order(self, order_id: str) -> None:
        self._request(
            "DELETE", f"/shifts/{url_quote(order_id)}",
            error_cls=OrderCancellationError,
            error_kwargs={"order_id": order_id},
        )
        self.logger.info("Shift cancelled", shift_id=order_id)

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        error_cls: type[ExchangeError] = ExchangeError,
        error_kwargs: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send one request and decode the JSON response, mapping failures to ExchangeError."""
        error_kwargs = error_kwargs or {}
        url = f"{self.base_url}{path}"

        data = json.dumps(body).encode("utf-8") if body is not None else None
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.config.secret:
            headers["x-sideshift-secret"] = self.config.secret

        req = Request(url, data=data, headers=headers, method=method)
        self.logger.debug("Exchange request", method=method, path=path)

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                raw = response.read().decode("utf-8")

        except HTTPError as e:
            raise self._map_http_error(e, method, path, error_cls, error_kwargs) from e

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning("Exchange network error", method=method, path=path, error=str(e))
            raise error_cls(
                f"Network error: {e}",
                retryable=True,
                context={"method": method, "path": path},
                **error_kwargs,
            ) from e

        if not raw.strip():
            return {}

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise error_cls(
                f"Invalid JSON from exchange: {e}",
                context={"method": method, "path": path},
                **error_kwargs,
            ) from e

        if not isinstance(payload, dict):
            raise error_cls(
                "Unexpected response shape from exchange",
                context={"method": method, "path": path},
                **error_kwargs,
            )
        return payload

    def _map_http_error(
        self,
        error: HTTPError,
        method: str,
        path: str,
        error_cls: type[ExchangeError],
        error_kwargs: dict[str, Any],
    ) -> ExchangeError:
        api_message = _error_message(error)
        context = {"method": method, "path": path, "status": error.code}

        self.logger.warning(
            "Exchange HTTP error",
            method=method,
            path=path,
            status_code=error.code,
            api_message=api_message,
        )

        if error.code == 401:
            return ExchangeAuthenticationError(
                "Authentication failed; check the exchange secret",
                status_code=401,
                context=context,
            )

        if error.code == 429:
            retry_after = None
            if error.headers is not None and error.headers.get("Retry-After"):
                try:
                    retry_after = float(error.headers["Retry-After"])
                except ValueError:
                    retry_after = None
            return RateLimitedError(
                "Rate limit exceeded; try again later",
                retry_after=retry_after,
                status_code=429,
                context=context,
            )

        if error.code >= 500:
            return error_cls(
                f"Exchange unavailable (HTTP {error.code})",
                status_code=error.code,
                retryable=True,
                context=context,
                **error_kwargs,
            )

        return error_cls(
            f"SideShift API error: {api_message or error.reason}",
            status_code=error.code,
            retryable=False,
            context=context,
            **error_kwargs,
        )


def _error_message(error: HTTPError) -> Optional[str]:
    """Extract error.message from a SideShift error body."""
    try:
        body = error.read().decode("utf-8")
        payload = json.loads(body)
    except (OSError, ValueError, AttributeError, KeyError):
        return None

    if isinstance(payload, dict):
        inner = payload.get("error")
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if isinstance(inner, str):
            return inner
    return None
