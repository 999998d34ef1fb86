from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.favorite.service import FavoriteService
from app.common.http_response_model import CommonResponse
from app.database import db_session
from app.schemas import CreateFavoritePreset, CurrentUser

router = APIRouter()


@router.get("/preset/user", name="Get all user favorite presets")
async def get_user_favorite_presets(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):

    try:
        favorite_service = FavoriteService(session)
        user_favorite_presets = await favorite_service.get_all_user_favorites(user.uid)
        payload = CommonResponse(
            message="Successfully fetch user favorite presets",
            success=True,
            payload=user_favorite_presets,
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


@router.get("/preset/{preset_id}", name="Get is preset favorite by user")
async def get_is_preset_favorite(
    response: Response,
    preset_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):

    try:
        favorite_service = FavoriteService(session)
        is_preset_favorite = await favorite_service.get_is_preset_favorite_by_user(
            user.uid, preset_id
        )
        payload = CommonResponse(
            message="Successfully fetch is preset favorite by the user",
            success=True,
            payload=is_preset_favorite,
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


@router.post("/preset/add", name="Add preset to favorite")
async def add_preset_to_favorite(
    response: Response,
    preset_favorite_data: CreateFavoritePreset,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):

    try:
        favorite_service = FavoriteService(session)
        favorite = await favorite_service.create_favorite_preset(
            preset_favorite_data, user
        )
        payload = CommonResponse(
            message="Preset has been added to favorite list",
            success=True,
            payload=favorite,
        )
        response.status_code = status.HTTP_201_CREATED
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


@router.delete("/preset/{preset_id}", name="Remove preset from favorite")
async def remove_preset_from_favorite(
    response: Response,
    preset_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):

    try:
        favorite_service = FavoriteService(session)
        await favorite_service.delete_favorite_preset(user.uid, preset_id)
        payload = CommonResponse(
            message="Preset has been removed from favorite list",
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
