from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.user.service import UserService
from app.common.http_response_model import CommonResponse
from app.database import db_session
from app.schemas import CurrentUser

router = APIRouter()


@router.get("/profile", name="Get current user profile")
async def get_user_profile(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        user_service = UserService(session)
        profile = await user_service.get_user_profile(user)
        payload = CommonResponse(
            message="User profile fetched successfully",
            success=True,
            payload=profile,
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


@router.delete("/delete", name="Delete current user account")
async def delete_user(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        user_service = UserService(session)
        await user_service.delete_user(user)
        payload = CommonResponse(
            message="User has been deleted successfully",
            success=True,
            payload=None,
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
