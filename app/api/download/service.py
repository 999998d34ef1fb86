from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.credit_management.calculator import calculate_balance
from app.api.download.policy import (
    active_records,
    expired_records,
    find_open_window,
    is_record_expired,
    now_ms,
    remaining_label,
    window_start,
)
from app.api.payment.service import PaymentLedgerService
from app.common.s3_content_client import normalize_download_url
from app.config import settings
from app.database import db_session
from app.logger.logger import logger
from app.models import PresetCategory, UserDownload
from app.schemas import CurrentUser, PresetRef

PREFERRED_CATEGORY_ORDER = [category.value for category in PresetCategory]

ANONYMOUS_EMAIL = "anonymous@user.com"


def normalize_category(category: str) -> str:
    """Map display names such as "Vocal Chain" onto slugs such as "vocal_chain"."""
    return "_".join(category.strip().lower().replace("-", " ").split())


def order_categories(categories: Iterable[str]) -> List[str]:
    unique = set(categories)
    preferred = [category for category in PREFERRED_CATEGORY_ORDER if category in unique]
    others = sorted(unique - set(PREFERRED_CATEGORY_ORDER))
    return preferred + others


def group_downloads_by_category(
    downloads: Iterable[UserDownload],
) -> Dict[str, List[UserDownload]]:
    """Group records by category, preferred categories first, the rest alphabetical."""
    buckets: Dict[str, List[UserDownload]] = {}
    for download in downloads:
        buckets.setdefault(download.preset_category, []).append(download)
    return {category: buckets[category] for category in order_categories(buckets)}


def build_download_id(user_id: str, preset_id: str, download_time: int) -> str:
    return f"{user_id}#{preset_id}#{download_time}"


def format_preset_name(preset_name: Optional[str]) -> str:
    if not preset_name:
        return "Untitled Preset"

    if "_" not in preset_name:
        return preset_name

    parts = [part for part in preset_name.split("_") if part]

    if parts[0] == "instrument" and len(parts) >= 3:
        return f"{parts[1].capitalize()} {parts[2].capitalize()}"

    if parts[:2] == ["vocal", "chain"] and len(parts) > 2:
        parts = parts[2:]

    return " ".join(part.capitalize() for part in parts)


def format_download_time(timestamp: int) -> str:
    dt = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_download(record: UserDownload, now: Optional[int] = None) -> Dict[str, Any]:
    now = now_ms() if now is None else now
    return {
        "id": record.id,
        "user_id": record.user_id,
        "user_email": record.user_email,
        "preset_id": record.preset_id,
        "preset_category": record.preset_category,
        "preset_key": record.preset_key,
        "preset_name": record.preset_name,
        "file_name": record.file_name,
        "credits": record.credits or 0,
        "download_time": record.download_time,
        "download_time_iso": format_download_time(record.download_time),
        "download_url": record.download_url,
        "window_started_at": window_start(record),
        "is_expired": is_record_expired(record, now),
        "remaining_label": remaining_label(window_start(record), now),
    }


class DownloadLedgerService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
    ) -> None:
        self.session = session

    async def get_user_download_history(self, user_id: str) -> List[UserDownload]:
        """All download records of a user, newest first; empty on read failure."""
        try:
            result = await self.session.execute(
                select(UserDownload)
                .where(UserDownload.user_id == user_id)
                .order_by(UserDownload.download_time.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"[DownloadLedger] Error retrieving download history: {e}")
            return []

    async def get_download_record(self, download_id: str) -> Optional[UserDownload]:
        result = await self.session.execute(
            select(UserDownload).where(UserDownload.id == download_id)
        )
        return result.scalar_one_or_none()

    async def get_most_recent_download(
        self, user_id: str, preset_id: str
    ) -> Optional[UserDownload]:
        downloads = await self.get_user_download_history(user_id)
        matching = [download for download in downloads if download.preset_id == preset_id]
        if not matching:
            return None
        return max(matching, key=lambda download: download.download_time)

    async def is_free_redownload_eligible(
        self, user_id: str, preset_id: str, now: Optional[int] = None
    ) -> bool:
        downloads = await self.get_user_download_history(user_id)
        return find_open_window(downloads, preset_id, now) is not None

    async def get_all_download_records(
        self, limit: int = settings.ADMIN_RECORD_LIMIT
    ) -> List[UserDownload]:
        try:
            result = await self.session.execute(
                select(UserDownload)
                .order_by(UserDownload.download_time.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"[DownloadLedger] Error retrieving all download records: {e}")
            return []

    async def delete_download_record(self, download_id: str) -> bool:
        """Delete one record; deleting a missing record is a no-op."""
        try:
            await self.session.execute(
                delete(UserDownload).where(UserDownload.id == download_id)
            )
            await self.session.commit()
            return True
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[DownloadLedger] Error deleting download record: {e}")
            return False

    async def delete_expired_user_downloads(
        self, user_id: str, now: Optional[int] = None
    ) -> int:
        """Remove the user's records whose redownload window closed; returns the count."""
        now = now_ms() if now is None else now
        try:
            downloads = await self.get_user_download_history(user_id)
            expired_ids = [record.id for record in expired_records(downloads, now)]
            if not expired_ids:
                return 0

            await self.session.execute(
                delete(UserDownload).where(UserDownload.id.in_(expired_ids))
            )
            await self.session.commit()
            logger.info(
                f"[DownloadLedger] Removed {len(expired_ids)} expired downloads for {user_id}"
            )
            return len(expired_ids)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[DownloadLedger] Error deleting expired user downloads: {e}")
            return 0

    async def get_download_history_with_cleanup(
        self, user_id: str, now: Optional[int] = None
    ) -> Dict[str, Any]:
        now = now_ms() if now is None else now
        removed_count = await self.delete_expired_user_downloads(user_id, now)

        downloads = active_records(await self.get_user_download_history(user_id), now)
        grouped = group_downloads_by_category(downloads)

        return {
            "downloads": [serialize_download(record, now) for record in downloads],
            "categories": list(grouped.keys()),
            "grouped": {
                category: [serialize_download(record, now) for record in records]
                for category, records in grouped.items()
            },
            "removed_count": removed_count,
        }

    async def record_download(
        self,
        user: CurrentUser,
        preset: PresetRef,
        preset_name: Optional[str] = None,
        file_name: Optional[str] = None,
        credit_cost: int = 1,
        download_url: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Optional[UserDownload]:
        """
        Record a download, charging ``credit_cost`` unless an open redownload window
        exists for the preset.

        Returns None for presets that cost nothing and have no open window; such
        downloads are not tracked.

        Raises:
            HTTPException: 402 when the available balance does not cover the charge
        """
        now = now_ms() if now is None else now
        category = normalize_category(preset.category)
        preset_id = f"{category}_{preset.preset_key}"
        display_name = preset_name or format_preset_name(preset.preset_key)

        downloads = await self.get_user_download_history(user.uid)
        anchor = find_open_window(downloads, preset_id, now)

        if anchor:
            credits_charged = 0
            window_started_at = anchor.download_time
        else:
            credits_charged = credit_cost
            window_started_at = now

            if credits_charged == 0:
                logger.debug(f"[DownloadLedger] Untracked free download of {preset_id}")
                return None

            payments = await PaymentLedgerService(self.session).get_user_payment_history(
                user.uid
            )
            balance = calculate_balance(payments, downloads)
            if balance.available < credits_charged:
                logger.error(
                    f"[DownloadLedger] User {user.uid} has {balance.available} credits, needs {credits_charged}"
                )
                raise HTTPException(
                    status_code=status.HTTP_402_PAYMENT_REQUIRED,
                    detail=f"Insufficient credits: {credits_charged} required, {balance.available} available",
                )

        record = UserDownload(
            id=build_download_id(user.uid, preset_id, now),
            user_id=user.uid,
            user_email=user.email or ANONYMOUS_EMAIL,
            preset_id=preset_id,
            preset_category=category,
            preset_key=preset.preset_key,
            preset_name=display_name,
            file_name=file_name or display_name,
            credits=credits_charged,
            download_time=now,
            window_started_at=window_started_at,
            download_url=normalize_download_url(download_url),
        )
        self.session.add(record)
        await self.session.commit()

        logger.info(
            f"[DownloadLedger] {user.uid} downloaded {preset_id} for {credits_charged} credits"
        )
        return record
