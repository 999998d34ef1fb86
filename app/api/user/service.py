import asyncio
from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from firebase_admin import auth as firebase_auth
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.credit_management.calculator import calculate_balance
from app.api.deps import has_admin_access
from app.api.download.service import DownloadLedgerService
from app.api.payment.service import PaymentLedgerService
from app.auth.firebase import get_firebase_app
from app.database import db_session
from app.logger.logger import logger
from app.schemas import CurrentUser


class UserService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
    ) -> None:
        self.session = session

    async def get_user_profile(self, user: CurrentUser) -> Dict[str, Any]:
        payments = await PaymentLedgerService(self.session).get_user_payment_history(
            user.uid
        )
        downloads = await DownloadLedgerService(
            self.session
        ).get_user_download_history(user.uid)

        return {
            "id": user.uid,
            "email": user.email,
            "display_name": user.name,
            "is_admin": has_admin_access(user),
            "credits": calculate_balance(payments, downloads).dict(),
            "payment_history": payments,
        }

    # removes the identity; ledger rows stay for accounting
    async def delete_user(self, user: CurrentUser) -> bool:
        try:
            await asyncio.to_thread(
                firebase_auth.delete_user, user.uid, get_firebase_app()
            )
        except firebase_auth.UserNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        logger.info(f"[User] Deleted account {user.uid}")
        return True
