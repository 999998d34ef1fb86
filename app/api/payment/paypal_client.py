from typing import Any, Dict

import httpx

from app.config import settings
from app.logger.logger import logger


class PayPalVerificationError(Exception):
    pass


class PayPalClient:
    def __init__(self) -> None:
        self.base_url = settings.PAYPAL_API_BASE
        self.timeout = httpx.Timeout(30.0, connect=30.0)

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        if not settings.PAYPAL_CLIENT_ID or not settings.PAYPAL_CLIENT_SECRET:
            raise PayPalVerificationError("PayPal credentials not configured")

        response = await client.post(
            f"{self.base_url}/v1/oauth2/token",
            auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
            data={"grant_type": "client_credentials"},
        )
        if response.status_code != 200:
            logger.error(f"PayPal token request failed: {response.status_code}")
            raise PayPalVerificationError("Failed to get PayPal access token")

        return response.json()["access_token"]

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            access_token = await self._get_access_token(client)
            response = await client.get(
                f"{self.base_url}/v2/checkout/orders/{order_id}",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
            )

        if response.status_code != 200:
            raise PayPalVerificationError(f"PayPal API error: {response.status_code}")

        return response.json()


def paid_amount(order: Dict[str, Any]) -> float:
    purchase_units = order.get("purchase_units") or [{}]
    value = (purchase_units[0].get("amount") or {}).get("value", "0")
    return float(value)
