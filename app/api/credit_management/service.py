import asyncio
from enum import Enum
from typing import Any, Dict, List, Tuple

from app.api.credit_management.calculator import CreditBalance, calculate_balance
from app.api.download.service import DownloadLedgerService
from app.api.payment.service import PaymentLedgerService
from app.database import SessionLocal
from app.logger.logger import logger
from app.models import PaymentRecord, PriceType, UserDownload


class CreditTransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    DOWNLOAD = "DOWNLOAD"


def purchase_description(payment: PaymentRecord) -> str:
    via = f" via {payment.payment_method}" if payment.payment_method else ""
    return f"Purchase of {payment.plan_name} plan ({PriceType(payment.price_type).value}){via} for ${payment.price_amount}"


def build_credit_history(
    user_id: str, payments: List[PaymentRecord], downloads: List[UserDownload]
) -> List[Dict[str, Any]]:
    """Merge both ledgers into one signed transaction list, newest first."""
    history = [
        {
            "id": f"{user_id}#payment_{payment.id}",
            "transaction_type": CreditTransactionType.PURCHASE,
            "amount": payment.credits or 0,
            "timestamp": payment.purchase_time,
            "related_id": payment.id,
            "description": purchase_description(payment),
        }
        for payment in payments
    ] + [
        {
            "id": f"{user_id}#download_{download.id}",
            "transaction_type": CreditTransactionType.DOWNLOAD,
            "amount": -(download.credits or 0),
            "timestamp": download.download_time,
            "related_id": download.id,
            "description": f"Download of {download.preset_name} ({download.preset_category})",
        }
        for download in downloads
    ]
    return sorted(history, key=lambda entry: entry["timestamp"], reverse=True)


class CreditManagementService:
    def __init__(self, session_factory=SessionLocal) -> None:
        self.session_factory = session_factory

    async def _fetch_payments(self, user_id: str) -> List[PaymentRecord]:
        async with self.session_factory() as session:
            return await PaymentLedgerService(session).get_user_payment_history(user_id)

    async def _fetch_downloads(self, user_id: str) -> List[UserDownload]:
        async with self.session_factory() as session:
            return await DownloadLedgerService(session).get_user_download_history(
                user_id
            )

    async def fetch_ledgers(
        self, user_id: str
    ) -> Tuple[List[PaymentRecord], List[UserDownload]]:
        # independent sessions so both reads can run at once
        payments, downloads = await asyncio.gather(
            self._fetch_payments(user_id), self._fetch_downloads(user_id)
        )
        return payments, downloads

    async def get_user_credit_balance(self, user_id: str) -> CreditBalance:
        payments, downloads = await self.fetch_ledgers(user_id)
        return calculate_balance(payments, downloads)

    async def get_user_credit_history(self, user_id: str) -> List[Dict[str, Any]]:
        payments, downloads = await self.fetch_ledgers(user_id)
        return build_credit_history(user_id, payments, downloads)

    async def validate_user_credits(self, user_id: str, required_credits: int) -> bool:
        if required_credits <= 0:
            return True

        try:
            balance = await self.get_user_credit_balance(user_id)
        except Exception as e:
            logger.error(f"[CreditManagement] Error validating user credits: {e}")
            return False

        if balance.available < required_credits:
            logger.error(
                f"[CreditManagement] User {user_id} has {balance.available} credits, needs {required_credits}"
            )
            return False
        return True
