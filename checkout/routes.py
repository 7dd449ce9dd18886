import json
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from checkout.exceptions import CheckoutError
from checkout.orders import LineItem, OrderLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter()


class ItemIn(BaseModel):
    quantity: Decimal
    price: Decimal


class BillingDetailsIn(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class RefundRequest(BaseModel):
    payment_id: int = Field(alias="paymentId")
    refund_amount: Decimal = Field(alias="refundAmount")
    user_id: int = Field(alias="userId")


_items_adapter = TypeAdapter(List[ItemIn])


def get_service(request: Request) -> OrderLifecycleService:
    return request.app.state.service


def _error(exc: Exception) -> PlainTextResponse:
    return PlainTextResponse("Error: " + str(exc), status_code=500)


INDEX_HTML = """<!doctype html>
<html>
  <head><title>Checkout</title></head>
  <body>
    <form action="/pay" method="post">
      <input name="userId" placeholder="User ID">
      <textarea name="items">[{"quantity": 1, "price": 10.00}]</textarea>
      <input name="couponCode" placeholder="Coupon code">
      <textarea name="billingDetails">{"full_name": "", "email": ""}</textarea>
      <button type="submit">Pay with PayPal</button>
    </form>
  </body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def index():
    return INDEX_HTML


@router.get("/health")
def health():
    return {"ok": True}


@router.post("/pay")
def pay(
    userId: int = Form(...),
    items: str = Form(...),
    couponCode: Optional[str] = Form(None),
    billingDetails: str = Form(...),
    service: OrderLifecycleService = Depends(get_service),
):
    try:
        parsed_items = [LineItem(quantity=i.quantity, price=i.price) for i in _items_adapter.validate_json(items)]
        billing = BillingDetailsIn.model_validate(json.loads(billingDetails))
        created = service.create(userId, parsed_items, couponCode, billing.model_dump())
    except (CheckoutError, ValueError) as exc:
        return _error(exc)

    return RedirectResponse(created.approval_url, status_code=303)


@router.get("/complete-order", response_class=PlainTextResponse)
def complete_order(
    token: str,
    userId: Optional[int] = None,
    service: OrderLifecycleService = Depends(get_service),
):
    try:
        service.capture(token, userId)
    except CheckoutError as exc:
        return _error(exc)

    return "Order and Payment completed successfully"


@router.get("/cancel-order")
def cancel_order():
    return RedirectResponse("/", status_code=303)


async def refund_request(request: Request) -> RefundRequest:
    """Read the refund fields from a JSON body or a url-encoded form."""
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            data = await request.json()
        else:
            data = dict(await request.form())
        return RefundRequest.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    except ValueError as exc:
        raise RequestValidationError([{"loc": ("body",), "msg": str(exc), "type": "value_error"}]) from exc


@router.post("/refund")
def refund(request: RefundRequest = Depends(refund_request), service: OrderLifecycleService = Depends(get_service)):
    try:
        result = service.refund(request.payment_id, request.refund_amount, request.user_id)
    except CheckoutError as exc:
        return _error(exc)

    return {
        "success": result.success,
        "message": result.message,
        "refundTransactionId": result.refund_transaction_id,
    }
