from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.polar.service import PolarService
from app.common.http_response_model import CommonResponse
from app.database import db_session
from app.logger.logger import logger
from app.schemas import CurrentUser

router = APIRouter()


@router.get("/checkout", name="Redirect to a Polar hosted checkout")
async def polar_checkout(
    response: Response,
    products: List[str] = Query(..., description="Polar product ids"),
    plan_name: Optional[str] = Query(None, alias="planName"),
    credits: Optional[int] = Query(None, ge=0),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        # products may arrive repeated or comma separated
        product_ids = [
            product_id.strip()
            for value in products
            for product_id in value.split(",")
            if product_id.strip()
        ]
        polar_service = PolarService(session)
        checkout_url = await polar_service.create_checkout(
            user, product_ids, plan_name=plan_name, credits=credits
        )
        return RedirectResponse(url=checkout_url, status_code=status.HTTP_303_SEE_OTHER)

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while creating polar checkout: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.post("/webhook", name="Polar webhook handler")
async def polar_webhook_handler(
    response: Response,
    request: Request,
    session: AsyncSession = Depends(db_session),
):
    try:
        body = await request.body()

        polar_service = PolarService(session)
        event = polar_service.verify_webhook(body, request.headers)
        result = await polar_service.handle_event(event)

        payload = CommonResponse(
            success=True,
            message="Webhook event has been handled successfully",
            payload=result,
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while handling polar webhook: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload
