import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api.credit_management.service import CreditManagementService
from app.api.deps import get_current_user
from app.common.http_response_model import CommonResponse, PageMeta
from app.schemas import CurrentUser

router = APIRouter()


@router.get("/balance", name="Get user credit balance")
async def get_user_balance(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
) -> CommonResponse:
    try:
        service = CreditManagementService()
        balance = await service.get_user_credit_balance(user.uid)

        payload = CommonResponse(
            message="User credit balance fetched successfully",
            success=True,
            payload=balance.dict(),
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
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/history", name="Get credit transaction history")
async def get_credit_history(
    response: Response,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
) -> CommonResponse:
    try:
        service = CreditManagementService()
        history = await service.get_user_credit_history(user.uid)

        start = (page - 1) * page_size
        payload = CommonResponse(
            message="Credit history fetched successfully",
            success=True,
            payload=history[start : start + page_size],
            meta=PageMeta(
                page=page,
                page_size=page_size,
                total_pages=math.ceil(len(history) / page_size),
                total_items=len(history),
            ),
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
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/validate", name="Check whether the user can spend credits")
async def validate_credits(
    response: Response,
    required_credits: int = Query(..., description="Credits the action needs"),
    user: CurrentUser = Depends(get_current_user),
) -> CommonResponse:
    try:
        service = CreditManagementService()
        has_credits = await service.validate_user_credits(user.uid, required_credits)

        payload = CommonResponse(
            message="Credit validation completed",
            success=True,
            payload={"has_sufficient_credits": has_credits},
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
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload
