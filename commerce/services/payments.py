from __future__ import annotations

import hashlib
import hmac
from typing import Optional

import requests

from commerce.exceptions import PaymentError
from commerce.logging_setup import get_logger
from commerce.services import orders

logger = get_logger("payments")

RAZORPAY_API = "https://api.razorpay.com/v1"


class RazorpayGateway:
    """Thin client for the two Razorpay calls checkout needs."""

    def __init__(self, key_id: str, key_secret: str, timeout: float = 15.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout

    def create_order(self, amount: float, currency: str = "INR", receipt: Optional[str] = None) -> dict:
        """
        Create a gateway order for `amount` rupees. Razorpay works in paise.

        Returns the gateway's JSON (id, amount, currency, status, ...).
        """
        paise = int(round(float(amount) * 100))
        if paise <= 0:
            raise PaymentError("Amount must be greater than zero")
        payload = {"amount": paise, "currency": currency}
        if receipt:
            payload["receipt"] = receipt

        try:
            response = requests.post(
                f"{RAZORPAY_API}/orders",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Razorpay request failed: %s", e)
            raise PaymentError("Could not reach the payment gateway", code="gateway_unreachable") from e

        if response.status_code >= 400:
            logger.error("Razorpay order creation failed (%s): %s", response.status_code, response.text)
            raise PaymentError(
                "Payment gateway rejected the order",
                code="gateway_error",
                details={"status": response.status_code},
            )
        data = response.json()
        logger.info("Razorpay order %s created for %s paise", data.get("id"), paise)
        return data

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        body = f"{order_id}|{payment_id}".encode("utf-8")
        expected = hmac.new(self.key_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, (signature or "").strip())


def gateway_from_settings(settings) -> Optional[RazorpayGateway]:
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        return None
    return RazorpayGateway(settings.razorpay_key_id, settings.razorpay_key_secret)


# -------------------------
# Checkout flow
# -------------------------

def start_gateway_checkout(conn, gateway: RazorpayGateway, order_id: int, currency: str = "INR") -> dict:
    """
    Open a gateway order for a freshly placed order.

    If the gateway refuses, the order is cancelled so its reserved stock goes
    back, and PaymentError propagates.
    """
    order = orders.get_order(conn, order_id)
    try:
        gw = gateway.create_order(float(order["grand_total"]), currency=currency, receipt=order["reference_code"])
    except PaymentError:
        orders.cancel_order(conn, order_id)
        logger.warning("Order #%s cancelled after gateway failure", order_id)
        raise
    orders.attach_gateway_order(conn, order_id, gw["id"])
    return gw


def complete_gateway_payment(conn, gateway: RazorpayGateway, order_id: int, payment_id: str, signature: str) -> bool:
    order = orders.get_order(conn, order_id)
    if not order.get("gateway_order_id"):
        raise PaymentError("Order has no gateway reference", details={"order_id": int(order_id)})
    if not gateway.verify_signature(order["gateway_order_id"], payment_id, signature):
        logger.warning("Signature mismatch for order #%s", order_id)
        raise PaymentError("Payment signature could not be verified", code="bad_signature")
    return orders.confirm_payment(conn, order_id, payment_id)


def abandon_gateway_checkout(conn, order_id: int) -> bool:
    """
    Give up on an unpaid gateway checkout: the order is cancelled and its
    stock goes back. Paid orders are left alone.
    """
    order = orders.get_order(conn, order_id)
    if order["payment_status"] == "paid":
        raise PaymentError("Order is already paid", code="already_paid", details={"order_id": int(order_id)})
    cancelled = orders.cancel_order(conn, order_id)
    logger.info("Gateway checkout for order #%s abandoned", order_id)
    return cancelled
