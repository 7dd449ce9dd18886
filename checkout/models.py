from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from checkout.database import Base

Money = Numeric(10, 2, asdecimal=True)


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)


class Coupon(Base):
    __tablename__ = "coupons"

    coupon_code = Column(String, primary_key=True)
    discount_value = Column(Money, nullable=False)
    discount_type = Column(String, nullable=False)     # percentage | fixed
    expiry_date = Column(DateTime, nullable=False)     # naive UTC


class Billing(Base):
    __tablename__ = "billing"

    billing_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    full_name = Column(String)
    email = Column(String)
    phone = Column(String)
    address_line_1 = Column(String)
    address_line_2 = Column(String)
    city = Column(String)
    state = Column(String)
    postal_code = Column(String)
    country = Column(String)


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    total_amount = Column(Money, nullable=False)
    coupon_code = Column(String)
    billing_id = Column(Integer, ForeignKey("billing.billing_id"), nullable=False)
    paypal_order_id = Column(String, unique=True, index=True)   # set once the remote order exists
    payment_status = Column(String, default="pending")          # pending | paid


class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"))
    order_id = Column(Integer, ForeignKey("orders.order_id"), nullable=False)
    amount = Column(Money, nullable=False)
    transaction_id = Column(String, index=True)                 # PayPal capture ID
    payment_status = Column(String)
    paypal_order_id = Column(String)


class Refund(Base):
    __tablename__ = "refunds"

    refund_id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(Integer, ForeignKey("payments.payment_id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id"))
    refund_amount = Column(Money, nullable=False)
    refund_status = Column(String)
    refund_transaction_id = Column(String)
