"""PayPal REST client for the checkout lifecycle.

Thin wrapper over ``httpx`` for the four provider calls the lifecycle needs:
client-credentials token exchange, order creation, order capture and
capture refund. Each failure is translated into the matching
``PaymentProviderError`` subclass; nothing is retried and tokens are not
cached, so every lifecycle operation authenticates again.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import httpx

from checkout.exceptions import AuthError, CaptureError, RefundError, RemoteOrderError

logger = logging.getLogger(__name__)

CURRENCY = "USD"
CENTS = Decimal("0.01")


def format_amount(amount) -> str:
    """Render an amount the way PayPal expects it: two decimals, no exponent."""
    return str(Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_in: Optional[int] = None


@dataclass(frozen=True)
class RemoteOrder:
    external_order_id: str
    approval_url: str


@dataclass(frozen=True)
class CapturedPayment:
    transaction_id: str
    amount: Decimal


@dataclass(frozen=True)
class RemoteRefund:
    refund_transaction_id: str
    status: str


class PayPalClient:
    """Client for the PayPal Orders and Payments APIs.

    Args:
        base_url: API root, e.g. ``https://api-m.sandbox.paypal.com``.
        client_id: REST app client id.
        secret: REST app secret.
        brand_name: Label shown to the buyer on the approval page.
        timeout: Per-request timeout in seconds.
        http_client: Pre-built ``httpx.Client``; when given, its base URL is
            used as-is and the caller owns its lifetime.
    """

    def __init__(
        self,
        base_url: str = "",
        client_id: str = "",
        secret: str = "",
        brand_name: str = "Your App",
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.client_id = client_id
        self.secret = secret
        self.brand_name = brand_name
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self):
        if self._owns_client:
            self._http.close()

    def _post(self, url: str, token: AccessToken, error_cls, json: Any = None) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token.value}",
        }
        try:
            resp = self._http.post(url, json=json, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(
                "paypal request failed",
                extra={"url": url, "status_code": status, "body": exc.response.text},
            )
            raise error_cls(f"PayPal returned HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning("paypal request error", extra={"url": url, "error": str(exc)})
            raise error_cls(f"PayPal request failed: {exc}") from exc
        except ValueError as exc:
            raise error_cls("PayPal returned a non-JSON body") from exc

        if not isinstance(body, dict):
            raise error_cls("PayPal returned an unexpected JSON body")
        return body

    def authenticate(self) -> AccessToken:
        """Exchange the client credentials for a short-lived bearer token."""
        try:
            resp = self._http.post(
                "/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.secret),
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("paypal authentication rejected", extra={"status_code": status})
            raise AuthError(f"PayPal authentication failed with HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"PayPal authentication failed: {exc}") from exc
        except ValueError as exc:
            raise AuthError("PayPal returned a non-JSON token response") from exc

        if not isinstance(body, dict):
            raise AuthError("PayPal returned an unexpected token response")

        access_token = body.get("access_token")
        if not access_token:
            raise AuthError("PayPal token response has no access_token")
        return AccessToken(value=access_token, expires_in=body.get("expires_in"))

    def create_remote_order(self, token: AccessToken, amount, return_url: str, cancel_url: str) -> RemoteOrder:
        """Create a CAPTURE-intent order and return its id and approval link."""
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {"amount": {"currency_code": CURRENCY, "value": format_amount(amount)}},
            ],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "user_action": "PAY_NOW",
                "brand_name": self.brand_name,
            },
        }
        body = self._post("/v2/checkout/orders", token, RemoteOrderError, json=payload)

        order_id = body.get("id")
        links = body.get("links")
        if not isinstance(links, list):
            links = []
        approval_url = next(
            (
                link.get("href")
                for link in links
                if isinstance(link, dict) and link.get("rel") == "approve"
            ),
            None,
        )
        if not order_id or not approval_url:
            raise RemoteOrderError("PayPal order response has no approval link")
        return RemoteOrder(external_order_id=order_id, approval_url=approval_url)

    def capture_remote_order(self, token: AccessToken, external_order_id: str) -> CapturedPayment:
        """Capture an approved order; reads the first capture of the first purchase unit."""
        body = self._post(f"/v2/checkout/orders/{external_order_id}/capture", token, CaptureError)
        try:
            capture = body["purchase_units"][0]["payments"]["captures"][0]
            return CapturedPayment(
                transaction_id=capture["id"],
                amount=Decimal(str(capture["amount"]["value"])),
            )
        except (KeyError, IndexError, TypeError, ArithmeticError) as exc:
            raise CaptureError("PayPal capture response has no capture record") from exc

    def refund_capture(self, token: AccessToken, transaction_id: str, amount) -> RemoteRefund:
        """Refund ``amount`` of a captured payment, fully or partially."""
        payload = {"amount": {"currency_code": CURRENCY, "value": format_amount(amount)}}
        body = self._post(f"/v2/payments/captures/{transaction_id}/refund", token, RefundError, json=payload)
        if not body.get("id"):
            raise RefundError("PayPal refund response has no id")
        return RemoteRefund(refund_transaction_id=body["id"], status=body.get("status", ""))
