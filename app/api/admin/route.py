from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.admin.metrics import TimeRange
from app.api.admin.service import AdminService, export_filename
from app.api.deps import get_current_admin_user, get_current_user, has_admin_access
from app.common.http_response_model import CommonResponse
from app.database import db_session
from app.logger.logger import logger
from app.schemas import CurrentUser

router = APIRouter()


@router.get("/check", name="Check admin access of the current user")
async def check_admin_access(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
):
    payload = CommonResponse(
        message="Admin access checked",
        success=True,
        payload={"is_admin": has_admin_access(user)},
    )
    response.status_code = status.HTTP_200_OK
    return payload


@router.get("/metrics", name="Get dashboard metrics")
async def get_metrics(
    response: Response,
    time_range: TimeRange = Query(TimeRange.WEEK),
    admin: CurrentUser = Depends(get_current_admin_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        admin_service = AdminService(session)
        metrics = await admin_service.get_metrics(time_range)
        payload = CommonResponse(
            message="Dashboard metrics fetched successfully",
            success=True,
            payload=metrics,
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
        logger.error(f"An error occurred while computing metrics: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/content", name="Get content statistics")
async def get_content_stats(
    response: Response,
    admin: CurrentUser = Depends(get_current_admin_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        admin_service = AdminService(session)
        stats = await admin_service.get_content_stats()
        payload = CommonResponse(
            message="Content statistics fetched successfully",
            success=True,
            payload=stats,
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
        logger.error(f"An error occurred while computing content statistics: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/downloads", name="Get all download records")
async def get_downloads(
    response: Response,
    search: Optional[str] = None,
    category: Optional[str] = None,
    date_range: Optional[TimeRange] = None,
    admin: CurrentUser = Depends(get_current_admin_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        admin_service = AdminService(session)
        table = await admin_service.get_download_table(search, category, date_range)
        payload = CommonResponse(
            message="Download records fetched successfully",
            success=True,
            payload=table,
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


@router.get("/downloads/export", name="Export download records as CSV")
async def export_downloads(
    response: Response,
    search: Optional[str] = None,
    category: Optional[str] = None,
    date_range: Optional[TimeRange] = None,
    admin: CurrentUser = Depends(get_current_admin_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        admin_service = AdminService(session)
        content = await admin_service.export_downloads_csv(search, category, date_range)
        return Response(
            content=content,
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{export_filename()}"'
            },
        )

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while exporting downloads: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/users", name="List registered users")
async def list_users(
    response: Response,
    page_token: Optional[str] = None,
    per_page: int = Query(100, ge=1, le=1000),
    admin: CurrentUser = Depends(get_current_admin_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        admin_service = AdminService(session)
        users = await admin_service.list_users(page_token, per_page)
        payload = CommonResponse(
            message="Users fetched successfully",
            success=True,
            payload=users,
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
