import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.download.policy import now_ms
from app.api.payment.paypal_client import (
    PayPalClient,
    PayPalVerificationError,
    paid_amount,
)
from app.config import settings
from app.database import db_session
from app.logger.logger import logger
from app.models import (
    BankTransfer,
    BankTransferStatus,
    PaymentMethod,
    PaymentRecord,
    PriceType,
)
from app.schemas import PaymentUserData, PayPalVerifyRequest, TestPaymentRequest

PAYPAL_AMOUNT_TOLERANCE = 0.01


def build_payment_id(
    user_id: str, purchase_time: int, transaction_id: Optional[str] = None
) -> str:
    if transaction_id:
        return f"{user_id}#{transaction_id}"
    return f"{user_id}#payment_{purchase_time}"


def group_payments_by_plan(
    payments: List[PaymentRecord],
) -> Dict[str, List[PaymentRecord]]:
    grouped: Dict[str, List[PaymentRecord]] = {}
    for payment in payments:
        grouped.setdefault(payment.plan_name, []).append(payment)
    return grouped


def generate_reference_code() -> str:
    return f"MIX-{uuid.uuid4().hex[:8].upper()}"


class PaymentLedgerService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
    ) -> None:
        self.session = session

    async def get_payment_by_transaction_id(
        self, transaction_id: str
    ) -> Optional[PaymentRecord]:
        result = await self.session.execute(
            select(PaymentRecord).where(PaymentRecord.transaction_id == transaction_id)
        )
        return result.scalars().first()

    async def record_payment(
        self,
        user_id: str,
        user_email: str,
        plan_name: str,
        price_amount: float,
        credits: int,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
        payment_details: Optional[Dict[str, Any]] = None,
        price_type: PriceType = PriceType.ONE_TIME,
    ) -> PaymentRecord:
        """
        Append one confirmed purchase to the payment ledger.

        A replay carrying an already recorded provider transaction id returns
        the existing row, so each verified transaction is written once.
        """
        if credits is None or credits < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Credits must be a non-negative number",
            )

        if transaction_id:
            existing = await self.get_payment_by_transaction_id(transaction_id)
            if existing:
                logger.info(
                    f"[PaymentLedger] Transaction {transaction_id} already recorded as {existing.id}"
                )
                return existing

        purchase_time = now_ms()
        payment = PaymentRecord(
            id=build_payment_id(user_id, purchase_time, transaction_id),
            user_id=user_id,
            user_email=user_email,
            plan_name=plan_name,
            price_type=price_type,
            price_amount=price_amount,
            credits=credits,
            purchase_time=purchase_time,
            confirmed=True,
            payment_method=payment_method,
            transaction_id=transaction_id,
            payment_details=payment_details,
        )
        self.session.add(payment)
        await self.session.commit()

        logger.info(
            f"[PaymentLedger] Recorded {credits} credits for {user_email} ({user_id}) via {payment_method}"
        )
        return payment

    async def get_user_payment_history(self, user_id: str) -> List[PaymentRecord]:
        """Confirmed purchases of a user, newest first; empty on read failure."""
        try:
            result = await self.session.execute(
                select(PaymentRecord)
                .where(PaymentRecord.user_id == user_id)
                .where(PaymentRecord.confirmed == True)  # noqa: E712
                .order_by(PaymentRecord.purchase_time.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"[PaymentLedger] Error retrieving payment history: {e}")
            return []

    async def get_all_payment_records(
        self, limit: int = settings.ADMIN_RECORD_LIMIT
    ) -> List[PaymentRecord]:
        try:
            result = await self.session.execute(
                select(PaymentRecord)
                .order_by(PaymentRecord.purchase_time.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"[PaymentLedger] Error retrieving all payment records: {e}")
            return []

    async def initiate_bank_transfer(
        self,
        user_id: str,
        user_email: str,
        plan_name: str,
        amount: float,
        credits: int,
    ) -> Dict[str, Any]:
        transfer = BankTransfer(
            reference_code=generate_reference_code(),
            user_id=user_id,
            user_email=user_email,
            plan_name=plan_name,
            amount=amount,
            credits=credits,
            status=BankTransferStatus.PENDING,
        )
        self.session.add(transfer)
        await self.session.commit()

        logger.info(
            f"[BankTransfer] Pending transfer {transfer.reference_code} for {user_email}"
        )
        return {
            "referenceCode": transfer.reference_code,
            "bankDetails": {
                "accountName": settings.BANK_ACCOUNT_NAME,
                "accountNumber": settings.BANK_ACCOUNT_NUMBER,
                "bankName": settings.BANK_NAME,
            },
        }

    async def verify_bank_transfer(self, reference_code: str) -> PaymentRecord:
        result = await self.session.execute(
            select(BankTransfer).where(BankTransfer.reference_code == reference_code)
        )
        transfer = result.scalar_one_or_none()

        if not transfer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No bank transfer found for reference {reference_code}",
            )

        if transfer.status == BankTransferStatus.CONFIRMED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Bank transfer {reference_code} was already verified",
            )

        payment = await self.record_payment(
            user_id=transfer.user_id,
            user_email=transfer.user_email,
            plan_name=transfer.plan_name,
            price_amount=transfer.amount,
            credits=transfer.credits,
            payment_method=PaymentMethod.BANK_TRANSFER.value,
            transaction_id=transfer.reference_code,
        )

        transfer.status = BankTransferStatus.CONFIRMED
        transfer.payment_record_id = payment.id
        self.session.add(transfer)
        await self.session.commit()
        return payment


def require_user_data(user_data: Optional[PaymentUserData]) -> PaymentUserData:
    if not user_data or not user_data.uid or not user_data.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing user data"
        )
    return user_data


class PaymentVerificationService:
    """Verifies provider payments and turns them into ledger rows."""

    TEST_USER_PREFIX = "test_user_"

    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
        paypal_client: Optional[PayPalClient] = None,
    ) -> None:
        self.ledger = PaymentLedgerService(session)
        self.paypal_client = paypal_client or PayPalClient()

    async def verify_paypal_payment(self, data: PayPalVerifyRequest) -> PaymentRecord:
        user_data = require_user_data(data.user_data)
        if not data.order_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order ID"
            )

        try:
            order = await self.paypal_client.get_order(data.order_id)
        except PayPalVerificationError as e:
            logger.error(f"[PayPal] Verification failed for {data.order_id}: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        if order.get("status") != "COMPLETED":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment not completed. Status: {order.get('status')}",
            )

        amount = paid_amount(order)
        if abs(amount - data.amount) > PAYPAL_AMOUNT_TOLERANCE:
            logger.error(
                f"[PayPal] Amount mismatch for {data.order_id}: expected {data.amount}, got {amount}"
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment amount mismatch. Expected {data.amount}, received {amount}",
            )

        return await self.ledger.record_payment(
            user_id=user_data.uid,
            user_email=user_data.email,
            plan_name=data.plan_name,
            price_amount=data.amount,
            credits=data.credits,
            payment_method=PaymentMethod.PAYPAL.value,
            transaction_id=data.order_id,
            payment_details={
                "verified_order": order,
                "client_details": data.transaction_details,
            },
        )

    async def process_test_payment(self, data: TestPaymentRequest) -> Dict[str, Any]:
        if not settings.TEST_PAYMENTS_ENABLED:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Test payments are disabled",
            )

        user_data = require_user_data(data.user_data)
        plan_name = data.plan_name or "Test Plan"
        amount = data.amount if data.amount is not None else 0
        credits = data.credits if data.credits is not None else 100

        if user_data.uid.startswith(self.TEST_USER_PREFIX):
            logger.info(f"[TestPayment] Skipping ledger write for {user_data.uid}")
            return {"recorded": False, "credits": credits, "payment": None}

        payment = await self.ledger.record_payment(
            user_id=user_data.uid,
            user_email=user_data.email,
            plan_name=plan_name,
            price_amount=amount,
            credits=credits,
            payment_method=PaymentMethod.TEST.value,
            transaction_id=f"test_{now_ms()}",
        )
        return {"recorded": True, "credits": credits, "payment": payment}
