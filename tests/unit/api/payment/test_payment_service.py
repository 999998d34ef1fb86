from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app import schemas
from app.api.payment.paypal_client import PayPalClient
from app.api.payment.service import (
    PaymentLedgerService,
    PaymentVerificationService,
    build_payment_id,
    group_payments_by_plan,
)
from app.config import settings
from app.models import PaymentMethod, PaymentRecord
from app.schemas import PayPalVerifyRequest


@pytest.fixture
def mock_session():
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def paypal_client():
    return AsyncMock(spec=PayPalClient)


def no_existing_transaction():
    result = MagicMock()
    result.scalars.return_value.first.return_value = None
    return result


def paypal_request(amount=9.99):
    return PayPalVerifyRequest(
        orderID="ORDER-1",
        userData={"uid": "user-1", "email": "user@example.com"},
        planName="Starter",
        amount=amount,
        credits=10,
    )


def completed_order(value="9.99"):
    return {"id": "ORDER-1", "status": "COMPLETED", "purchase_units": [{"amount": {"value": value}}]}


def test_payment_ids():
    assert build_payment_id("user-1", 123, "ORDER-1") == "user-1#ORDER-1"
    assert build_payment_id("user-1", 123) == "user-1#payment_123"


def test_group_payments_by_plan():
    payments = [
        PaymentRecord(id="a", user_id="u", user_email="e", plan_name="Starter", credits=1, purchase_time=1),
        PaymentRecord(id="b", user_id="u", user_email="e", plan_name="Pro", credits=1, purchase_time=2),
        PaymentRecord(id="c", user_id="u", user_email="e", plan_name="Starter", credits=1, purchase_time=3),
    ]

    grouped = group_payments_by_plan(payments)

    assert [p.id for p in grouped["Starter"]] == ["a", "c"]
    assert [p.id for p in grouped["Pro"]] == ["b"]


@pytest.mark.asyncio
async def test_record_payment_is_idempotent_per_transaction(mock_session):
    existing = PaymentRecord(
        id="user-1#ORDER-1", user_id="user-1", user_email="e", plan_name="Starter", credits=10, purchase_time=1
    )
    result = MagicMock()
    result.scalars.return_value.first.return_value = existing
    mock_session.execute.return_value = result

    payment = await PaymentLedgerService(mock_session).record_payment(
        "user-1", "e", "Starter", 9.99, 10, transaction_id="ORDER-1"
    )

    assert payment is existing
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_record_payment_rejects_negative_credits(mock_session):
    with pytest.raises(HTTPException) as exc_info:
        await PaymentLedgerService(mock_session).record_payment(
            "user-1", "e", "Starter", 9.99, -1
        )

    assert exc_info.value.status_code == 400
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_paypal_payment_is_recorded(mock_session, paypal_client):
    paypal_client.get_order.return_value = completed_order()
    mock_session.execute.return_value = no_existing_transaction()
    service = PaymentVerificationService(mock_session, paypal_client=paypal_client)

    payment = await service.verify_paypal_payment(paypal_request())

    assert payment.id == "user-1#ORDER-1"
    assert payment.payment_method == PaymentMethod.PAYPAL.value
    assert payment.confirmed is True
    assert payment.payment_details["verified_order"]["status"] == "COMPLETED"
    mock_session.add.assert_called_once_with(payment)


@pytest.mark.asyncio
async def test_paypal_amount_mismatch_writes_nothing(mock_session, paypal_client):
    paypal_client.get_order.return_value = completed_order("5.00")
    service = PaymentVerificationService(mock_session, paypal_client=paypal_client)

    with pytest.raises(HTTPException) as exc_info:
        await service.verify_paypal_payment(paypal_request())

    assert exc_info.value.status_code == 400
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_paypal_incomplete_order_writes_nothing(mock_session, paypal_client):
    paypal_client.get_order.return_value = {"status": "APPROVED"}
    service = PaymentVerificationService(mock_session, paypal_client=paypal_client)

    with pytest.raises(HTTPException) as exc_info:
        await service.verify_paypal_payment(paypal_request())

    assert "APPROVED" in exc_info.value.detail
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_test_payment_defaults(mock_session, paypal_client):
    mock_session.execute.return_value = no_existing_transaction()
    service = PaymentVerificationService(mock_session, paypal_client=paypal_client)

    with patch.object(settings, "TEST_PAYMENTS_ENABLED", True):
        result = await service.process_test_payment(
            schemas.TestPaymentRequest(userData={"uid": "user-1", "email": "user@example.com"})
        )

    assert result["recorded"] is True
    assert result["payment"].plan_name == "Test Plan"
    assert result["payment"].credits == 100
    assert result["payment"].price_amount == 0


@pytest.mark.asyncio
async def test_test_users_are_not_recorded(mock_session, paypal_client):
    service = PaymentVerificationService(mock_session, paypal_client=paypal_client)

    with patch.object(settings, "TEST_PAYMENTS_ENABLED", True):
        result = await service.process_test_payment(
            schemas.TestPaymentRequest(userData={"uid": "test_user_42", "email": "t@example.com"})
        )

    assert result["recorded"] is False
    mock_session.add.assert_not_called()
