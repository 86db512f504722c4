from urllib.parse import urlparse, parse_qs

import pytest

from app.schemas.payment import ReceiptData
from app.services import receipt_service


def _receipt(**overrides) -> ReceiptData:
    data = {
        "transaction_id": "pay_123",
        "payment_id": 7,
        "user_name": "Bob Builder",
        "user_email": "bob@example.com",
        "amount": 500.0,
        "currency": "INR",
        "payment_status": "CAPTURED",
        "payment_date": "2026-10-19T10:00:00",
        "description": "Pro plan & extras",
    }
    data.update(overrides)
    return ReceiptData(**data)


def _decode_qr_fields(url: str) -> dict:
    """Mirror what verify-qr.html does: decode `data`, then parse it as a query string."""
    data = parse_qs(urlparse(url).query)["data"][0]
    return {k: v[0] for k, v in parse_qs(data).items()}


def test_qr_data_points_at_verification_page() -> None:
    url = receipt_service.build_qr_data(_receipt())
    assert url.startswith("https://api.example.com/api/payment/verify-qr?data=")


def test_qr_data_carries_receipt_fields() -> None:
    fields = _decode_qr_fields(receipt_service.build_qr_data(_receipt()))

    assert fields == {
        "txn": "pay_123",
        "pid": "7",
        "amt": "500.00",
        "cur": "INR",
        "status": "CAPTURED",
        "date": "2026-10-19T10:00:00",
        "user": "Bob Builder",
        "email": "bob@example.com",
        "desc": "Pro plan & extras",
    }


def test_qr_data_defaults_for_missing_fields() -> None:
    fields = _decode_qr_fields(receipt_service.build_qr_data(ReceiptData()))

    assert fields == {
        "txn": "UNKNOWN",
        "pid": "N/A",
        "amt": "0.00",
        "cur": "INR",
        "status": "PENDING",
        "date": "N/A",
        "user": "UNKNOWN",
        "email": "N/A",
        "desc": "Payment Receipt",
    }


def test_generate_qr_png() -> None:
    png = receipt_service.generate_qr_png("hello")
    assert png.startswith(b"\x89PNG\r\n\x1a\n")


def test_generate_qr_png_rejects_empty() -> None:
    with pytest.raises(ValueError):
        receipt_service.generate_qr_png("")


def test_generate_payment_pdf() -> None:
    pdf = receipt_service.generate_payment_pdf(_receipt())

    assert pdf.startswith(b"%PDF")
    assert b"%%EOF" in pdf[-1024:]


def test_pdf_tolerates_missing_and_markup_values() -> None:
    pdf = receipt_service.generate_payment_pdf(
        ReceiptData(transaction_id="pay_<1>", user_name="<b>Eve</b> & co")
    )
    assert pdf.startswith(b"%PDF")


def test_pdf_still_renders_when_qr_fails(monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("encoder exploded")

    monkeypatch.setattr(receipt_service, "generate_qr_png", broken)

    pdf = receipt_service.generate_payment_pdf(_receipt())
    assert pdf.startswith(b"%PDF")


def test_format_amount() -> None:
    assert receipt_service.format_amount(None) == "0.00"
    assert receipt_service.format_amount(12.5) == "12.50"
