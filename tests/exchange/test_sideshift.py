"""Tests for the SideShift API client."""

import io
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from shiftflow.config.defaults import ExchangeParams
from shiftflow.errors import (
    ExchangeAuthenticationError,
    OrderCancellationError,
    OrderCreationError,
    OrderStatusError,
    QuoteError,
    RateLimitedError,
    RateUnavailableError,
)
from shiftflow.exchange.sideshift import SideShiftClient

BASE_URL = "https://sideshift.ai/api/v2"


def ok(payload):
    """Mock urlopen context manager returning a JSON body."""
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8") if payload is not None else b""
    response.__enter__.return_value = response
    return response


def http_error(code, body=None, headers=None):
    raw = json.dumps(body).encode("utf-8") if body is not None else b""
    return HTTPError(f"{BASE_URL}/quotes", code, "error", headers or {}, io.BytesIO(raw))


def sent_request(mock_urlopen):
    return mock_urlopen.call_args[0][0]


@pytest.fixture
def client():
    return SideShiftClient(ExchangeParams(secret="s3cret", affiliate_id="aff-123"))


class TestRequests:
    """Request construction and response decoding."""

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_fetch_rate(self, mock_urlopen, client):
        """Test pair lookup URL, secret header and rate parsing."""
        mock_urlopen.return_value = ok({"min": "0.0001", "max": "2", "rate": "17.25"})

        assert client.fetch_rate("BTC", "ETH") == 17.25

        request = sent_request(mock_urlopen)
        assert request.full_url == f"{BASE_URL}/pair/btc/eth"
        assert request.get_method() == "GET"
        assert request.get_header("X-sideshift-secret") == "s3cret"

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_fetch_rate_without_rate_field(self, mock_urlopen, client):
        """Test that a payload without a rate is a rate failure."""
        mock_urlopen.return_value = ok({"min": "0.0001"})

        with pytest.raises(RateUnavailableError):
            client.fetch_rate("btc", "eth")

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_request_quote(self, mock_urlopen, client):
        """Test quote body and payload parsing."""
        mock_urlopen.return_value = ok({
            "id": "q-1",
            "depositCoin": "BTC",
            "settleCoin": "ETH",
            "depositNetwork": "bitcoin",
            "settleNetwork": "ethereum",
            "depositAmount": "0.01",
            "settleAmount": "0.1725",
            "rate": "17.25",
            "expiresAt": "2024-01-15T12:15:00.000Z",
        })

        quote = client.request_quote("btc", "eth", "0.01", from_network="bitcoin")

        assert quote.id == "q-1"
        assert quote.from_coin == "btc"
        assert quote.settle_amount == "0.1725"
        assert quote.expires_at == datetime(2024, 1, 15, 12, 15, tzinfo=timezone.utc)

        request = sent_request(mock_urlopen)
        assert request.full_url == f"{BASE_URL}/quotes"
        assert request.get_method() == "POST"
        assert json.loads(request.data) == {
            "depositCoin": "btc",
            "settleCoin": "eth",
            "depositAmount": "0.01",
            "depositNetwork": "bitcoin",
            "affiliateId": "aff-123",
        }

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_create_order(self, mock_urlopen, client):
        """Test fixed shift creation."""
        mock_urlopen.return_value = ok({
            "id": "shift-1",
            "depositAddress": "bc1deposit",
            "depositAmount": "0.01",
            "depositCoin": "BTC",
            "status": "waiting",
            "createdAt": "2024-01-15T12:00:00.000Z",
            "expiresAt": "2024-01-15T12:15:00.000Z",
        })

        order = client.create_order("q-1", "0xdestination", refund_address="bc1refund")

        assert order.id == "shift-1"
        assert order.deposit_instructions() == {
            "shift_id": "shift-1",
            "deposit_address": "bc1deposit",
            "deposit_amount": "0.01",
            "deposit_coin": "btc",
        }
        request = sent_request(mock_urlopen)
        assert request.full_url == f"{BASE_URL}/shifts/fixed"
        assert json.loads(request.data) == {
            "quoteId": "q-1",
            "settleAddress": "0xdestination",
            "affiliateId": "aff-123",
            "refundAddress": "bc1refund",
        }

    @pytest.mark.parametrize("affiliate_id", [None, "", "YOUR_AFFILIATE_ID"])
    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_create_order_needs_affiliate_id(self, mock_urlopen, affiliate_id):
        """Test that shift creation is refused without a real affiliate id."""
        client = SideShiftClient(ExchangeParams(affiliate_id=affiliate_id))

        with pytest.raises(OrderCreationError):
            client.create_order("q-1", "0xdestination")
        mock_urlopen.assert_not_called()

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_poll_order_status(self, mock_urlopen, client):
        """Test status lookup."""
        mock_urlopen.return_value = ok({"id": "shift-1", "status": "settling", "depositHash": "abc"})

        report = client.poll_order_status("shift-1")

        assert report.status == "settling"
        assert report.deposit_hash == "abc"
        assert sent_request(mock_urlopen).full_url == f"{BASE_URL}/shifts/shift-1"

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_cancel_order_accepts_empty_body(self, mock_urlopen, client):
        """Test that cancel uses DELETE and tolerates an empty response."""
        mock_urlopen.return_value = ok(None)

        client.cancel_order("shift-1")

        request = sent_request(mock_urlopen)
        assert request.get_method() == "DELETE"
        assert request.full_url == f"{BASE_URL}/shifts/shift-1"

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_no_secret_header_without_secret(self, mock_urlopen):
        """Test that the secret header is only sent when configured."""
        mock_urlopen.return_value = ok({"rate": "1"})

        SideShiftClient().fetch_rate("btc", "eth")

        assert sent_request(mock_urlopen).get_header("X-sideshift-secret") is None


class TestErrorMapping:
    """HTTP and network failure mapping."""

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_400_carries_api_message(self, mock_urlopen, client):
        """Test that a 400 becomes a permanent error with the API's message."""
        mock_urlopen.side_effect = http_error(400, {"error": {"message": "Amount too low"}})

        with pytest.raises(QuoteError) as exc_info:
            client.request_quote("btc", "eth", "0.00001")

        error = exc_info.value
        assert str(error) == "SideShift API error: Amount too low"
        assert error.status_code == 400
        assert error.retryable is False

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_401_is_authentication_error(self, mock_urlopen, client):
        """Test that a 401 maps to an authentication error."""
        mock_urlopen.side_effect = http_error(401)

        with pytest.raises(ExchangeAuthenticationError) as exc_info:
            client.poll_order_status("shift-1")
        assert exc_info.value.status_code == 401

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_429_is_rate_limited(self, mock_urlopen, client):
        """Test that a 429 is retryable and carries Retry-After."""
        mock_urlopen.side_effect = http_error(429, headers={"Retry-After": "12"})

        with pytest.raises(RateLimitedError) as exc_info:
            client.fetch_rate("btc", "eth")

        assert exc_info.value.retry_after == 12.0
        assert exc_info.value.retryable is True

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_5xx_is_retryable(self, mock_urlopen, client):
        """Test that a server error keeps the operation's error type and is retryable."""
        mock_urlopen.side_effect = http_error(503)

        with pytest.raises(OrderStatusError) as exc_info:
            client.poll_order_status("shift-1")

        assert exc_info.value.retryable is True
        assert exc_info.value.order_id == "shift-1"

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_cancel_rejection(self, mock_urlopen, client):
        """Test that a refused cancel is a cancellation error."""
        mock_urlopen.side_effect = http_error(400, {"error": {"message": "Shift cannot be cancelled yet"}})

        with pytest.raises(OrderCancellationError, match="cannot be cancelled yet"):
            client.cancel_order("shift-1")

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_network_error_is_retryable(self, mock_urlopen, client):
        """Test that a connection failure is retryable."""
        mock_urlopen.side_effect = URLError("connection refused")

        with pytest.raises(RateUnavailableError) as exc_info:
            client.fetch_rate("btc", "eth")
        assert exc_info.value.retryable is True

    @patch("shiftflow.exchange.sideshift.urlopen")
    def test_invalid_json(self, mock_urlopen, client):
        """Test that an undecodable body is an error of the operation's type."""
        response = ok(None)
        response.read.return_value = b"<html>"
        mock_urlopen.return_value = response

        with pytest.raises(OrderStatusError):
            client.poll_order_status("shift-1")
