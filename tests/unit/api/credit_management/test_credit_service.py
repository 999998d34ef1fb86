from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.api.credit_management.service import (
    CreditManagementService,
    CreditTransactionType,
    build_credit_history,
)
from app.api.download.service import DownloadLedgerService
from app.api.payment.service import PaymentLedgerService
from app.models import PaymentRecord, UserDownload


@asynccontextmanager
async def fake_session_factory():
    yield MagicMock()


def make_payment(credits, purchase_time):
    return PaymentRecord(
        id=f"user-1#payment_{purchase_time}",
        user_id="user-1",
        user_email="user@example.com",
        plan_name="Starter",
        price_amount=9.99,
        credits=credits,
        purchase_time=purchase_time,
        payment_method="PayPal",
    )


def make_download(credits, download_time):
    return UserDownload(
        id=f"user-1#premium_warm_pop#{download_time}",
        user_id="user-1",
        user_email="user@example.com",
        preset_id="premium_warm_pop",
        preset_category="premium",
        preset_key="warm_pop",
        preset_name="Warm Pop",
        file_name="Warm Pop",
        credits=credits,
        download_time=download_time,
        window_started_at=download_time,
    )


def test_credit_history_is_signed_and_newest_first():
    history = build_credit_history(
        "user-1", [make_payment(100, 1000)], [make_download(20, 2000)]
    )

    assert [entry["transaction_type"] for entry in history] == [
        CreditTransactionType.DOWNLOAD,
        CreditTransactionType.PURCHASE,
    ]
    assert history[0]["amount"] == -20
    assert history[1]["amount"] == 100
    assert history[1]["description"] == (
        "Purchase of Starter plan (one-time) via PayPal for $9.99"
    )


@pytest.mark.asyncio
async def test_balance_joins_both_ledgers():
    service = CreditManagementService(session_factory=fake_session_factory)

    with patch.object(
        PaymentLedgerService,
        "get_user_payment_history",
        new_callable=AsyncMock,
        return_value=[make_payment(100, 1000)],
    ), patch.object(
        DownloadLedgerService,
        "get_user_download_history",
        new_callable=AsyncMock,
        return_value=[make_download(20, 2000)],
    ):
        balance = await service.get_user_credit_balance("user-1")

    assert balance.dict() == {"available": 80, "used": 20, "total": 100}


@pytest.mark.asyncio
async def test_validate_user_credits():
    service = CreditManagementService(session_factory=fake_session_factory)

    with patch.object(
        PaymentLedgerService,
        "get_user_payment_history",
        new_callable=AsyncMock,
        return_value=[make_payment(5, 1000)],
    ), patch.object(
        DownloadLedgerService,
        "get_user_download_history",
        new_callable=AsyncMock,
        return_value=[],
    ):
        assert await service.validate_user_credits("user-1", 5) is True
        assert await service.validate_user_credits("user-1", 6) is False
        assert await service.validate_user_credits("user-1", 0) is True
