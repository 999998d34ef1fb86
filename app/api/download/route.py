from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.download.policy import now_ms, remaining_label, window_start
from app.api.download.service import (
    DownloadLedgerService,
    normalize_category,
    serialize_download,
)
from app.api.preset.service import PresetContentService
from app.common.http_response_model import CommonResponse
from app.database import db_session
from app.logger.logger import logger
from app.schemas import CurrentUser, DownloadPresetRequest, PresetRef

router = APIRouter()


@router.post("/preset", name="Download a preset")
async def download_preset(
    response: Response,
    data: DownloadPresetRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        preset = PresetRef(
            category=normalize_category(data.category), preset_key=data.preset_key
        )
        content_service = PresetContentService()
        metadata = await content_service.get_preset_metadata(
            preset.category, preset.preset_key
        )
        if metadata is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Preset not found"
            )
        link = await content_service.get_download_url(preset)

        download_service = DownloadLedgerService(session)
        record = await download_service.record_download(
            user,
            preset,
            preset_name=data.preset_name or metadata.name,
            file_name=data.file_name,
            credit_cost=metadata.credit_cost,
            download_url=link["key"],
        )

        payload = CommonResponse(
            message="Preset download is ready",
            success=True,
            payload={
                "download_url": link["url"],
                "record": serialize_download(record) if record else None,
            },
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
        logger.error(f"An error occurred while downloading preset: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/history", name="Get download history of the current user")
async def get_download_history(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        download_service = DownloadLedgerService(session)
        history = await download_service.get_download_history_with_cleanup(user.uid)
        payload = CommonResponse(
            message="Successfully fetched download history",
            success=True,
            payload=history,
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


@router.post("/cleanup", name="Remove expired downloads of the current user")
async def cleanup_expired_downloads(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        download_service = DownloadLedgerService(session)
        removed_count = await download_service.delete_expired_user_downloads(user.uid)
        payload = CommonResponse(
            message=f"Removed {removed_count} expired downloads",
            success=True,
            payload={"removed_count": removed_count},
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


@router.get("/eligibility", name="Check free redownload eligibility")
async def get_redownload_eligibility(
    response: Response,
    category: str = Query(...),
    preset_key: str = Query(...),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        preset_id = f"{normalize_category(category)}_{preset_key}"
        download_service = DownloadLedgerService(session)
        now = now_ms()
        eligible = await download_service.is_free_redownload_eligible(
            user.uid, preset_id, now
        )
        latest = await download_service.get_most_recent_download(user.uid, preset_id)

        payload = CommonResponse(
            message="Successfully checked redownload eligibility",
            success=True,
            payload={
                "preset_id": preset_id,
                "is_free": eligible,
                "remaining_label": (
                    remaining_label(window_start(latest), now) if latest else None
                ),
            },
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


@router.delete("/{download_id}", name="Delete a download record")
async def delete_download(
    response: Response,
    download_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        download_service = DownloadLedgerService(session)
        record = await download_service.get_download_record(download_id)
        if record is None or record.user_id != user.uid:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Download record not found",
            )

        deleted = await download_service.delete_download_record(download_id)
        payload = CommonResponse(
            message="Download record deleted",
            success=deleted,
            payload={"id": download_id},
        )
        response.status_code = (
            status.HTTP_200_OK if deleted else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
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
