from datetime import datetime
from decimal import Decimal

import pytest

from checkout.config import Settings
from checkout.database import Database
from checkout.models import Coupon, User
from checkout.orders import OrderLifecycleService
from checkout.paypal_service import AccessToken, CapturedPayment, PayPalClient, RemoteOrder, RemoteRefund


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'checkout.db'}")
    database.create_all()
    with database.transaction() as session:
        session.add_all([User(user_id=1), User(user_id=2)])
        session.add_all([
            Coupon(coupon_code="SAVE10", discount_value=Decimal("10"), discount_type="percentage",
                   expiry_date=datetime(2099, 1, 1)),
            Coupon(coupon_code="FIVEOFF", discount_value=Decimal("5.00"), discount_type="fixed",
                   expiry_date=datetime(2099, 1, 1)),
            Coupon(coupon_code="OLD50", discount_value=Decimal("50"), discount_type="percentage",
                   expiry_date=datetime(2000, 1, 1)),
        ])
    yield database
    database.dispose()


@pytest.fixture
def paypal(mocker):
    client = mocker.Mock(spec=PayPalClient)
    client.authenticate.return_value = AccessToken(value="A21AA-token", expires_in=32400)
    client.create_remote_order.return_value = RemoteOrder(
        external_order_id="5O190127TN364715T",
        approval_url="https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T",
    )
    client.capture_remote_order.return_value = CapturedPayment(
        transaction_id="3C679366HH908993F", amount=Decimal("20.00"),
    )
    client.refund_capture.return_value = RemoteRefund(refund_transaction_id="1JU08902781691411", status="COMPLETED")
    return client


@pytest.fixture
def service(db, paypal):
    return OrderLifecycleService(
        db, paypal,
        return_url="http://testserver/complete-order",
        cancel_url="http://testserver/cancel-order",
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'checkout.db'}",
        paypal_client_id="client-id",
        paypal_secret="secret",
        paypal_base_url="https://api-m.sandbox.paypal.com",
        base_url="http://testserver",
    )


@pytest.fixture
def count(db):
    def _count(model):
        with db.transaction() as session:
            return session.query(model).count()
    return _count
