import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from firebase_admin import auth as firebase_auth
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.admin.metrics import (
    TimeRange,
    category_counts,
    downloads_to_csv,
    filter_download_table,
    filter_frequency_tables,
    summarize_metrics,
    top_presets,
)
from app.api.download.service import (
    DownloadLedgerService,
    order_categories,
    serialize_download,
)
from app.api.payment.service import PaymentLedgerService
from app.api.preset.service import PresetContentService
from app.auth.firebase import get_firebase_app
from app.database import db_session
from app.logger.logger import logger


def serialize_identity(record: firebase_auth.ExportedUserRecord) -> Dict[str, Any]:
    metadata = record.user_metadata
    return {
        "uid": record.uid,
        "email": record.email,
        "display_name": record.display_name,
        "disabled": record.disabled,
        "created_at": metadata.creation_timestamp if metadata else None,
        "last_sign_in_at": metadata.last_sign_in_timestamp if metadata else None,
    }


class AdminService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
        content_service: Optional[PresetContentService] = None,
    ) -> None:
        self.session = session
        self.content_service = content_service

    def get_content_service(self) -> PresetContentService:
        if self.content_service is None:
            self.content_service = PresetContentService()
        return self.content_service

    async def get_metrics(
        self, time_range: TimeRange, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        downloads = await DownloadLedgerService(self.session).get_all_download_records()
        payments = await PaymentLedgerService(self.session).get_all_payment_records()
        return summarize_metrics(downloads, payments, time_range, now)

    async def get_content_stats(self) -> Dict[str, Any]:
        presets_by_category = await self.get_content_service().get_all_presets()
        downloads = await DownloadLedgerService(self.session).get_all_download_records()

        all_presets = [
            preset for presets in presets_by_category.values() for preset in presets
        ]
        metadata_by_id = {preset.id: preset for preset in all_presets}

        return {
            "total_presets": len(all_presets),
            "categories": category_counts(presets_by_category),
            "filters": filter_frequency_tables(all_presets),
            "top_presets": top_presets(downloads, metadata_by_id),
        }

    async def get_download_table(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        date_range: Optional[TimeRange] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        downloads = await DownloadLedgerService(self.session).get_all_download_records()
        filtered = filter_download_table(downloads, search, category, date_range, now)
        return {
            "downloads": [serialize_download(record) for record in filtered],
            "categories": order_categories(d.preset_category for d in downloads),
            "total": len(filtered),
        }

    async def export_downloads_csv(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        date_range: Optional[TimeRange] = None,
    ) -> str:
        downloads = await DownloadLedgerService(self.session).get_all_download_records()
        filtered = filter_download_table(downloads, search, category, date_range)
        logger.info(f"[Admin] Exporting {len(filtered)} download records")
        return downloads_to_csv(filtered)

    async def list_users(
        self, page_token: Optional[str] = None, max_results: int = 100
    ) -> Dict[str, Any]:
        page = await asyncio.to_thread(
            firebase_auth.list_users,
            page_token=page_token,
            max_results=max_results,
            app=get_firebase_app(),
        )
        return {
            "users": [serialize_identity(record) for record in page.users],
            "next_page_token": page.next_page_token or None,
        }


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"downloads_export_{now.strftime('%Y-%m-%d')}.csv"
