from email.utils import parseaddr

import pytest

from app.models.payment import Payment
from app.services import razorpay_service


def _create_order(client, headers, **overrides):
    body = {"user_id": "bob@example.com", "amount": 50000, "description": "Pro plan"}
    body.update(overrides)
    return client.post("/api/payment/create-order", json=body, headers=headers)


def _verify(client, headers, order_id="order_test123", payment_id="pay_test123", signature=None):
    if signature is None:
        signature = razorpay_service.compute_signature(order_id, payment_id)
    return client.post(
        "/api/payment/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        },
        headers=headers,
    )


def _wait_for_receipt(outbox):
    return [m for m in outbox if m["Subject"].startswith("Payment Receipt")]


# ── create-order ──────────────────────────────────────────────────────────────

def test_create_order_stores_pending_payment(client, db_session, auth_headers, razorpay_client) -> None:
    response = _create_order(client, auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "razorpay_order_id": "order_test123",
        "amount": 50000,
        "currency": "INR",
        "status": "PENDING",
        "message": "Order created successfully. Complete payment on frontend.",
    }

    payment = db_session.query(Payment).one()
    assert payment.status == "PENDING"
    assert payment.customer_email == "bob@example.com"
    assert int(payment.amount) == 50000
    assert payment.receipt.startswith("RCP")

    sent = razorpay_client.order.create.call_args.kwargs["data"]
    assert sent["receipt"] == payment.receipt
    assert "customer_email" not in sent


def test_create_order_keeps_explicit_customer_email(client, db_session, auth_headers) -> None:
    _create_order(client, auth_headers, user_id="tenant-42", customer_email="pay@example.com", receipt="my-receipt")

    payment = db_session.query(Payment).one()
    assert payment.customer_email == "pay@example.com"
    assert payment.receipt == "my-receipt"


def test_create_order_no_email_for_plain_user_id(client, db_session, auth_headers) -> None:
    _create_order(client, auth_headers, user_id="tenant-42")
    assert db_session.query(Payment).one().customer_email is None


@pytest.mark.parametrize(
    "overrides",
    [{"amount": 0}, {"amount": -5}, {"user_id": "   "}, {"receipt": "x" * 41}],
)
def test_create_order_validation(client, auth_headers, razorpay_client, overrides) -> None:
    response = _create_order(client, auth_headers, **overrides)

    assert response.status_code == 422


def test_create_order_gateway_failure(client, db_session, auth_headers, razorpay_client) -> None:
    razorpay_client.order.create.side_effect = RuntimeError("gateway down")

    response = _create_order(client, auth_headers)

    assert response.status_code == 502
    assert "gateway down" in response.json()["detail"]
    assert db_session.query(Payment).count() == 0


def test_create_order_requires_auth(client) -> None:
    assert _create_order(client, {}).status_code == 401


# ── verify ────────────────────────────────────────────────────────────────────

def test_verify_captures_payment_and_emails_receipt(client, db_session, auth_headers, outbox) -> None:
    _create_order(client, auth_headers)

    response = _verify(client, auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CAPTURED"
    assert data["razorpay_payment_id"] == "pay_test123"
    assert data["payment_method"] == "upi"

    payment = db_session.query(Payment).one()
    assert payment.razorpay_signature == razorpay_service.compute_signature("order_test123", "pay_test123")

    receipts = _wait_for_receipt(outbox)
    assert len(receipts) == 1
    message = receipts[0]
    assert parseaddr(message["To"])[1] == "bob@example.com"
    assert message["Subject"] == "Payment Receipt - Transaction ID: pay_test123"
    filenames = [part.get_filename() for part in message.walk() if part.get_filename()]
    assert filenames == ["Payment_Receipt_pay_test123.pdf"]


def test_verify_invalid_signature_marks_failed(client, db_session, auth_headers, outbox) -> None:
    _create_order(client, auth_headers)

    response = _verify(client, auth_headers, signature="0" * 64)

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment verification failed: Invalid signature"

    payment = db_session.query(Payment).one()
    assert payment.status == "FAILED"
    assert payment.error_message == "Invalid signature"
    assert payment.razorpay_payment_id is None
    assert _wait_for_receipt(outbox) == []


def test_verify_unknown_order(client, auth_headers) -> None:
    response = _verify(client, auth_headers, order_id="order_missing")

    assert response.status_code == 400
    assert "Payment record not found" in response.json()["detail"]


def test_verify_survives_payment_method_lookup_failure(client, auth_headers, razorpay_client) -> None:
    _create_order(client, auth_headers)
    razorpay_client.payment.fetch.side_effect = RuntimeError("timeout")

    response = _verify(client, auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "CAPTURED"
    assert response.json()["payment_method"] is None


def test_verify_without_any_email_skips_receipt(client, auth_headers, outbox) -> None:
    _create_order(client, auth_headers, user_id="tenant-42")

    response = _verify(client, auth_headers)

    assert response.status_code == 200
    assert _wait_for_receipt(outbox) == []


def test_verify_blank_fields_rejected(client, auth_headers) -> None:
    response = _verify(client, auth_headers, signature="   ")
    assert response.status_code == 422


def test_verify_bad_signature_leaves_captured_payment_alone(client, db_session, auth_headers, outbox) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)

    response = _verify(client, auth_headers, signature="0" * 64)

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment verification failed: Payment is already CAPTURED"
    payment = db_session.query(Payment).one()
    assert payment.status == "CAPTURED"
    assert payment.error_message is None
    assert len(_wait_for_receipt(outbox)) == 1


def test_verify_repeated_is_idempotent_without_second_receipt(client, db_session, auth_headers, outbox) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)

    response = _verify(client, auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "CAPTURED"
    assert len(_wait_for_receipt(outbox)) == 1


def test_verify_cannot_reopen_refunded_payment(client, db_session, auth_headers, outbox) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)
    client.post("/api/payment/refund", params={"payment_id": "pay_test123"}, headers=auth_headers)

    response = _verify(client, auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment verification failed: Payment is already REFUNDED"
    payment = db_session.query(Payment).one()
    assert payment.status == "REFUNDED"
    assert payment.error_message.startswith("Refund requested")
    assert len(_wait_for_receipt(outbox)) == 1


# ── lookups ───────────────────────────────────────────────────────────────────

def test_get_by_order_and_payment_id(client, auth_headers) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)

    by_order = client.get("/api/payment/order/order_test123", headers=auth_headers)
    by_payment = client.get("/api/payment/payment/pay_test123", headers=auth_headers)

    assert by_order.status_code == 200
    assert by_order.json() == by_payment.json()
    assert by_order.json()["amount"] == 50000


def test_lookup_missing_payment(client, auth_headers) -> None:
    assert client.get("/api/payment/order/nope", headers=auth_headers).status_code == 404
    assert client.get("/api/payment/payment/nope", headers=auth_headers).status_code == 404


def test_user_payments_newest_first(client, auth_headers, razorpay_client) -> None:
    for order_id in ("order_1", "order_2", "order_3"):
        razorpay_client.order.create.return_value = {"id": order_id}
        _create_order(client, auth_headers, user_id="tenant-42")
    razorpay_client.order.create.return_value = {"id": "order_other"}
    _create_order(client, auth_headers, user_id="tenant-99")

    response = client.get("/api/payment/user/tenant-42", headers=auth_headers)

    assert response.status_code == 200
    assert [p["razorpay_order_id"] for p in response.json()] == ["order_3", "order_2", "order_1"]


def test_user_payments_empty(client, auth_headers) -> None:
    response = client.get("/api/payment/user/nobody", headers=auth_headers)
    assert response.json() == []


# ── refund ────────────────────────────────────────────────────────────────────

def test_refund_marks_payment_refunded(client, auth_headers, razorpay_client) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)

    response = client.post(
        "/api/payment/refund",
        params={"payment_id": "pay_test123", "refund_amount": 1000, "reason": "duplicate"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "REFUNDED"
    assert response.json()["error_message"] == "Refund requested - Reason: duplicate"
    razorpay_client.payment.refund.assert_called_once_with(
        "pay_test123", {"amount": 1000, "notes": {"reason": "duplicate"}}
    )


def test_refund_default_reason_full_amount(client, auth_headers, razorpay_client) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)

    response = client.post("/api/payment/refund", params={"payment_id": "pay_test123"}, headers=auth_headers)

    assert response.json()["error_message"] == "Refund requested - Reason: Refund requested by user"
    args = razorpay_client.payment.refund.call_args.args
    assert "amount" not in args[1]


def test_refund_unknown_payment(client, auth_headers, razorpay_client) -> None:
    response = client.post("/api/payment/refund", params={"payment_id": "pay_missing"}, headers=auth_headers)

    assert response.status_code == 404
    razorpay_client.payment.refund.assert_not_called()


def test_refund_gateway_failure_keeps_status(client, db_session, auth_headers, razorpay_client) -> None:
    _create_order(client, auth_headers)
    _verify(client, auth_headers)
    razorpay_client.payment.refund.side_effect = RuntimeError("refund window closed")

    response = client.post("/api/payment/refund", params={"payment_id": "pay_test123"}, headers=auth_headers)

    assert response.status_code == 502
    assert db_session.query(Payment).one().status == "CAPTURED"


# ── public + admin endpoints ──────────────────────────────────────────────────

def test_key_is_public(client) -> None:
    response = client.get("/api/payment/key")
    assert response.json() == {"keyId": "rzp_test_key"}


def test_payment_health(client) -> None:
    data = client.get("/api/payment/health").json()
    assert data["status"] == "Payment service is running"
    assert "timestamp" in data


def test_test_email_requires_admin(client, auth_headers) -> None:
    response = client.post("/api/payment/test-email", json={"email": "ops@example.com"}, headers=auth_headers)
    assert response.status_code == 403


def test_test_email_sends_sample_receipt(client, admin_headers, outbox) -> None:
    response = client.post("/api/payment/test-email", json={"email": "ops@example.com"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["email"] == "ops@example.com"
    receipts = _wait_for_receipt(outbox)
    assert len(receipts) == 1
    assert receipts[0]["Subject"].startswith("Payment Receipt - Transaction ID: TEST-")


def test_verify_qr_page_is_public_html(client) -> None:
    response = client.get("/api/payment/verify-qr", params={"data": "txn%3DTX1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Payment Receipt Verification" in response.text


def test_app_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok", "version": "1.0.0"}
