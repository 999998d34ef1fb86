import json
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Depends, HTTPException, status
from polar_sdk import Polar
from polar_sdk.webhooks import WebhookVerificationError, validate_event
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.payment.service import PaymentLedgerService
from app.config import settings
from app.database import db_session
from app.logger.logger import logger
from app.models import PaymentMethod, PaymentRecord
from app.schemas import CurrentUser

ORDER_CREATED = "order.created"
CUSTOMER_STATE_CHANGED = "customer.state_changed"
REQUIRED_ORDER_METADATA = ("userId", "userEmail", "planName", "credits")


def get_polar_client() -> Polar:
    return Polar(access_token=settings.POLAR_ACCESS_TOKEN, server=settings.POLAR_SERVER)


def order_amount(order: Dict[str, Any]) -> float:
    """Order totals arrive in cents."""
    cents = order.get("total_amount")
    if cents is None:
        cents = order.get("amount") or 0
    return cents / 100


class PolarService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
        client: Optional[Polar] = None,
    ) -> None:
        self.session = session
        self.client = client

    def get_client(self) -> Polar:
        if self.client is None:
            self.client = get_polar_client()
        return self.client

    async def create_checkout(
        self,
        user: CurrentUser,
        product_ids: List[str],
        plan_name: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> str:
        if not product_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="At least one product is required",
            )

        metadata = {"userId": user.uid, "userEmail": user.email or ""}
        if plan_name:
            metadata["planName"] = plan_name
        if credits is not None:
            metadata["credits"] = str(credits)

        checkout = await self.get_client().checkouts.create_async(
            request={
                "products": product_ids,
                "success_url": settings.POLAR_SUCCESS_URL,
                "customer_email": user.email,
                "metadata": metadata,
            }
        )
        logger.info(f"[Polar] Created checkout {checkout.id} for {user.uid}")
        return checkout.url

    def verify_webhook(self, body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        try:
            validate_event(body=body, headers=dict(headers), secret=settings.POLAR_WEBHOOK_SECRET)
        except WebhookVerificationError as e:
            logger.error(f"[Polar] Webhook signature verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid webhook signature",
            )
        return json.loads(body)

    async def handle_order_created(self, order: Dict[str, Any]) -> Optional[PaymentRecord]:
        metadata = order.get("metadata") or {}
        missing = [field for field in REQUIRED_ORDER_METADATA if not metadata.get(field)]
        if missing:
            logger.error(
                f"[Polar] Order {order.get('id')} is missing metadata: {', '.join(missing)}"
            )
            return None

        return await PaymentLedgerService(self.session).record_payment(
            user_id=metadata["userId"],
            user_email=metadata["userEmail"],
            plan_name=metadata["planName"],
            price_amount=order_amount(order),
            credits=int(metadata["credits"]),
            payment_method=PaymentMethod.POLAR.value,
            transaction_id=order.get("id"),
            payment_details={"order_id": order.get("id"), "status": order.get("status")},
        )

    async def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get("type")
        data = event.get("data") or {}

        if event_type == ORDER_CREATED:
            payment = await self.handle_order_created(data)
            return {"received": True, "payment_id": payment.id if payment else None}

        if event_type == CUSTOMER_STATE_CHANGED:
            logger.info(f"[Polar] Customer state changed: {data.get('id')}")
        else:
            logger.debug(f"[Polar] Ignoring webhook event {event_type}")

        return {"received": True}
