"""Order lifecycle: create, capture and refund.

Each operation runs inside a single database transaction that also spans
the one PayPal call it makes. A failure anywhere rolls back every local
write. The provider side is not compensated: an order created or a
capture/refund executed remotely stays in place if the local commit fails
afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from checkout.database import Database
from checkout.exceptions import CheckoutError, InvalidAmountError, NotFoundError, PersistenceError
from checkout.models import Billing, Coupon, Order, Payment, Refund, User
from checkout.paypal_service import PayPalClient

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

BILLING_FIELDS = (
    "full_name",
    "email",
    "phone",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "country",
)


@dataclass(frozen=True)
class LineItem:
    quantity: Decimal
    price: Decimal


@dataclass(frozen=True)
class CreatedOrder:
    order_id: int
    external_order_id: str
    approval_url: str


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str


@dataclass(frozen=True)
class RefundResult:
    success: bool
    message: str
    refund_transaction_id: str


def compute_total(items: Iterable[LineItem]) -> Decimal:
    # Client-supplied quantity and price are taken as given.
    return sum((Decimal(str(i.quantity)) * Decimal(str(i.price)) for i in items), Decimal("0"))


def apply_coupon(total: Decimal, coupon: Coupon) -> Decimal:
    """Subtract one coupon's discount from ``total``. The result may go negative."""
    value = Decimal(str(coupon.discount_value))
    if coupon.discount_type == "percentage":
        return total - total * (value / Decimal(100))
    return total - value


def _utcnow() -> datetime:
    # Coupon expiry dates are stored as naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderLifecycleService:
    def __init__(self, db: Database, paypal: PayPalClient, return_url: str, cancel_url: str, clock=_utcnow):
        self.db = db
        self.paypal = paypal
        self.return_url = return_url
        self.cancel_url = cancel_url
        self.clock = clock

    def _find_coupon(self, session, coupon_code: str) -> Optional[Coupon]:
        return (
            session.query(Coupon)
            .filter(Coupon.coupon_code == coupon_code, Coupon.expiry_date > self.clock())
            .first()
        )

    def create(
        self,
        user_id: int,
        items: Iterable[LineItem],
        coupon_code: Optional[str],
        billing_details: Mapping[str, Optional[str]],
    ) -> CreatedOrder:
        """Record an order and open the matching PayPal order.

        Returns the internal order id, the PayPal order id and the URL the
        buyer must be redirected to for approval.
        """
        try:
            with self.db.transaction() as session:
                if session.get(User, user_id) is None:
                    raise NotFoundError("user")

                total = compute_total(items)
                if coupon_code:
                    coupon = self._find_coupon(session, coupon_code)
                    if coupon is not None:
                        total = apply_coupon(total, coupon)
                total = total.quantize(CENTS, rounding=ROUND_HALF_UP)

                billing = Billing(user_id=user_id, **{f: billing_details.get(f) for f in BILLING_FIELDS})
                session.add(billing)
                session.flush()

                order = Order(
                    user_id=user_id,
                    total_amount=total,
                    coupon_code=coupon_code or None,
                    billing_id=billing.billing_id,
                    payment_status="pending",
                )
                session.add(order)
                session.flush()

                token = self.paypal.authenticate()
                remote = self.paypal.create_remote_order(token, total, self.return_url, self.cancel_url)

                order.paypal_order_id = remote.external_order_id
                session.flush()
                result = CreatedOrder(
                    order_id=order.order_id,
                    external_order_id=remote.external_order_id,
                    approval_url=remote.approval_url,
                )
        except CheckoutError as exc:
            raise self._failed("createOrder", exc)
        except SQLAlchemyError as exc:
            raise self._failed("createOrder", PersistenceError(str(exc))) from exc

        logger.info(
            "order created",
            extra={"order_id": result.order_id, "paypal_order_id": result.external_order_id, "total": str(total)},
        )
        return result

    def capture(self, external_order_id: str, user_id: Optional[int]) -> OperationResult:
        """Capture an approved PayPal order and record the payment."""
        try:
            with self.db.transaction() as session:
                order = session.query(Order).filter_by(paypal_order_id=external_order_id).first()
                if order is None:
                    raise NotFoundError("order")

                token = self.paypal.authenticate()
                captured = self.paypal.capture_remote_order(token, external_order_id)

                order.payment_status = "paid"
                session.add(
                    Payment(
                        user_id=user_id,
                        order_id=order.order_id,
                        amount=captured.amount,
                        transaction_id=captured.transaction_id,
                        payment_status="paid",
                        paypal_order_id=external_order_id,
                    )
                )
        except CheckoutError as exc:
            raise self._failed("CAPTURE PAYMENT", exc)
        except SQLAlchemyError as exc:
            raise self._failed("CAPTURE PAYMENT", PersistenceError(str(exc))) from exc

        logger.info(
            "payment captured",
            extra={"paypal_order_id": external_order_id, "transaction_id": captured.transaction_id},
        )
        return OperationResult(success=True, message="Payment captured successfully")

    def refund(self, payment_id: int, refund_amount, user_id: int) -> RefundResult:
        """Refund part or all of a captured payment owned by ``user_id``."""
        refund_amount = Decimal(str(refund_amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
        try:
            with self.db.transaction() as session:
                payment = session.query(Payment).filter_by(payment_id=payment_id, user_id=user_id).first()
                if payment is None:
                    raise NotFoundError("payment")

                if refund_amount > payment.amount:
                    raise InvalidAmountError("Refund amount exceeds the original payment amount")

                token = self.paypal.authenticate()
                remote = self.paypal.refund_capture(token, payment.transaction_id, refund_amount)

                session.add(
                    Refund(
                        payment_id=payment.payment_id,
                        user_id=user_id,
                        refund_amount=refund_amount,
                        refund_status=remote.status,
                        refund_transaction_id=remote.refund_transaction_id,
                    )
                )
        except CheckoutError as exc:
            raise self._failed("REFUND PAYMENT", exc)
        except SQLAlchemyError as exc:
            raise self._failed("REFUND PAYMENT", PersistenceError(str(exc))) from exc

        logger.info(
            "refund recorded",
            extra={"payment_id": payment_id, "refund_transaction_id": remote.refund_transaction_id},
        )
        return RefundResult(
            success=True,
            message="Refund processed successfully",
            refund_transaction_id=remote.refund_transaction_id,
        )

    @staticmethod
    def _failed(operation: str, exc: CheckoutError) -> CheckoutError:
        exc.operation = operation
        logger.warning("%s failed", operation, extra={"error": exc.message, "error_type": type(exc).__name__})
        return exc
