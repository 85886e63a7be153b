"""
WayForPay
=========

Payment form construction and signature checks for the WayForPay
hosted checkout.

Signatures are the hex MD5 of the listed fields joined with ``;`` and
followed by ``;<merchant secret>``.
"""

import hashlib
import hmac
import time
from decimal import Decimal
from typing import Any, Iterable, Optional

from karma_diary.config import settings

PAYMENT_FIELDS = (
    "merchantAccount",
    "merchantDomainName",
    "orderReference",
    "orderDate",
    "amount",
    "currency",
    "productName",
    "productPrice",
    "productCount",
)

CALLBACK_FIELDS = (
    "merchantAccount",
    "orderReference",
    "amount",
    "currency",
    "authCode",
    "cardPan",
    "transactionStatus",
    "reasonCode",
)

STATUS_APPROVED = "Approved"


def _flatten(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ";".join(_flatten(item) for item in value)
    if value is None:
        return ""
    return str(value)


def build_signature(values: Iterable[Any], secret: str) -> str:
    """MD5 over ``v1;v2;...;secret``. List values are expanded in place."""
    sign_string = ";".join(_flatten(v) for v in values) + ";" + secret
    return hashlib.md5(sign_string.encode("utf-8")).hexdigest()


def verify_callback_signature(payload: dict, secret: Optional[str] = None) -> bool:
    """Check ``merchantSignature`` of a service callback."""
    secret = secret if secret is not None else settings.WAYFORPAY_SECRET
    received = payload.get("merchantSignature")
    if not received or not secret:
        return False
    expected = build_signature((payload.get(f) for f in CALLBACK_FIELDS), secret)
    return hmac.compare_digest(expected, str(received))


def format_amount(amount: Decimal) -> str:
    return f"{amount:.2f}"


def build_payment_form(
    order_reference: str,
    amount: Decimal,
    currency: str,
    product_name: str,
    order_date: Optional[int] = None,
) -> dict:
    """
    Signed checkout form for the frontend to POST to WayForPay.

    Returns:
        ``{"url": ..., "fields": {...}}``
    """
    order_date = order_date or int(time.time())
    price = format_amount(amount)
    fields = {
        "merchantAccount": settings.WAYFORPAY_MERCHANT,
        "merchantDomainName": settings.WAYFORPAY_DOMAIN,
        "orderReference": order_reference,
        "orderDate": order_date,
        "amount": price,
        "currency": currency,
        "productName": [product_name],
        "productPrice": [price],
        "productCount": [1],
        "returnUrl": f"{settings.FRONTEND_URL}/subscriptions?order={order_reference}",
        "serviceUrl": f"{settings.API_BASE_URL}/api/webhooks/wayforpay",
    }
    fields["merchantSignature"] = build_signature(
        (fields[f] for f in PAYMENT_FIELDS),
        settings.WAYFORPAY_SECRET,
    )
    return {"url": settings.WAYFORPAY_PAY_URL, "fields": fields}


def build_callback_response(order_reference: str, accept: bool, now: Optional[int] = None) -> dict:
    """Acknowledgement body WayForPay expects from the service URL."""
    return {
        "orderReference": order_reference,
        "status": "accept" if accept else "decline",
        "time": now or int(time.time()),
    }
