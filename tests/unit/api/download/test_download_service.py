from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.download.policy import FREE_REDOWNLOAD_WINDOW_MS, MS_PER_DAY, MS_PER_HOUR
from app.api.download.service import (
    DownloadLedgerService,
    format_preset_name,
    group_downloads_by_category,
    normalize_category,
)
from app.models import PaymentRecord, UserDownload
from app.schemas import CurrentUser, PresetRef

NOW = 1_700_000_000_000


@pytest.fixture
def mock_session():
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.add = MagicMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def user():
    return CurrentUser(uid="user-1", email="user@example.com", name="User One")


def scalars_result(records):
    result = MagicMock()
    result.scalars.return_value.all.return_value = records
    return result


def make_download(category, download_time, credits=1, preset_key="warm_pop"):
    preset_id = f"{category}_{preset_key}"
    return UserDownload(
        id=f"user-1#{preset_id}#{download_time}",
        user_id="user-1",
        user_email="user@example.com",
        preset_id=preset_id,
        preset_category=category,
        preset_key=preset_key,
        preset_name="Warm Pop",
        file_name="Warm Pop",
        credits=credits,
        download_time=download_time,
        window_started_at=download_time,
    )


def make_payment(credits):
    return PaymentRecord(
        id="user-1#order-1",
        user_id="user-1",
        user_email="user@example.com",
        plan_name="Starter",
        price_amount=10.0,
        credits=credits,
        purchase_time=NOW - MS_PER_DAY,
        confirmed=True,
    )


def test_group_downloads_by_category_uses_preferred_order():
    downloads = [
        make_download("instrument", NOW),
        make_download("premium", NOW - 1),
        make_download("vocal_chain", NOW - 2),
        make_download("premium", NOW - 3),
    ]

    grouped = group_downloads_by_category(downloads)

    assert list(grouped.keys()) == ["premium", "vocal_chain", "instrument"]
    assert len(grouped["premium"]) == 2


def test_other_categories_follow_alphabetically():
    downloads = [
        make_download("zeta", NOW),
        make_download("alpha", NOW),
        make_download("instrument", NOW),
    ]

    assert list(group_downloads_by_category(downloads)) == ["instrument", "alpha", "zeta"]


def test_normalize_category_and_preset_names():
    assert normalize_category("Vocal Chain") == "vocal_chain"
    assert normalize_category("vocal_chain") == "vocal_chain"
    assert format_preset_name("vocal_chain_warm_pop") == "Warm Pop"
    assert format_preset_name("instrument_bass_deep_house") == "Bass Deep"
    assert format_preset_name(None) == "Untitled Preset"


@pytest.mark.asyncio
async def test_cleanup_is_idempotent(mock_session):
    expired = make_download("premium", NOW - FREE_REDOWNLOAD_WINDOW_MS - 1)
    active = make_download("premium", NOW - MS_PER_HOUR, preset_key="other")
    mock_session.execute.side_effect = [
        scalars_result([active, expired]),
        MagicMock(),
        scalars_result([active]),
    ]
    service = DownloadLedgerService(mock_session)

    first = await service.delete_expired_user_downloads("user-1", NOW)
    second = await service.delete_expired_user_downloads("user-1", NOW)

    assert first == 1
    assert second == 0
    assert mock_session.commit.call_count == 1


@pytest.mark.asyncio
async def test_cleanup_failure_returns_zero(mock_session):
    expired = make_download("premium", NOW - FREE_REDOWNLOAD_WINDOW_MS - 1)
    mock_session.execute.side_effect = [
        scalars_result([expired]),
        Exception("connection lost"),
    ]
    service = DownloadLedgerService(mock_session)

    assert await service.delete_expired_user_downloads("user-1", NOW) == 0
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_cleanup_keeps_active_history(mock_session):
    active = make_download("instrument", NOW - 1000, preset_key="bright_keys")
    expired = make_download("premium", NOW - FREE_REDOWNLOAD_WINDOW_MS - 1)
    mock_session.execute.side_effect = [
        scalars_result([active, expired]),
        Exception("delete failed"),
        scalars_result([active, expired]),
    ]
    service = DownloadLedgerService(mock_session)

    history = await service.get_download_history_with_cleanup("user-1", NOW)

    mock_session.rollback.assert_awaited_once()
    mock_session.commit.assert_not_awaited()
    assert history["removed_count"] == 0
    assert [d["id"] for d in history["downloads"]] == [active.id]
    assert history["categories"] == ["instrument"]


@pytest.mark.asyncio
async def test_failed_delete_rolls_back(mock_session):
    mock_session.execute.side_effect = Exception("delete failed")
    service = DownloadLedgerService(mock_session)

    assert await service.delete_download_record("download-1") is False
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_history_read_failure_returns_empty(mock_session):
    mock_session.execute.side_effect = Exception("connection lost")
    service = DownloadLedgerService(mock_session)

    assert await service.get_user_download_history("user-1") == []


@pytest.mark.asyncio
async def test_record_download_charges_credits(mock_session, user):
    mock_session.execute.side_effect = [
        scalars_result([]),
        scalars_result([make_payment(10)]),
    ]
    service = DownloadLedgerService(mock_session)

    record = await service.record_download(
        user,
        PresetRef(category="Vocal Chain", preset_key="warm_pop"),
        credit_cost=2,
        download_url="https://preset-bucket.s3.amazonaws.com/vocal_chain/warm_pop/full_preset.zip?X-Amz-Signature=abc",
        now=NOW,
    )

    assert record.credits == 2
    assert record.preset_id == "vocal_chain_warm_pop"
    assert record.preset_category == "vocal_chain"
    assert record.window_started_at == NOW
    assert record.file_name == "Warm Pop"
    assert record.download_url == "vocal_chain/warm_pop/full_preset.zip"
    mock_session.add.assert_called_once_with(record)
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_record_download_inside_window_is_free(mock_session, user):
    paid = make_download("vocal_chain", NOW - MS_PER_DAY, credits=2)
    mock_session.execute.side_effect = [scalars_result([paid])]
    service = DownloadLedgerService(mock_session)

    record = await service.record_download(
        user, PresetRef(category="vocal_chain", preset_key="warm_pop"), now=NOW
    )

    assert record.credits == 0
    assert record.window_started_at == paid.download_time
    # the balance is not consulted for free redownloads
    assert mock_session.execute.await_count == 1


@pytest.mark.asyncio
async def test_record_download_refuses_without_credits(mock_session, user):
    mock_session.execute.side_effect = [
        scalars_result([]),
        scalars_result([make_payment(1)]),
    ]
    service = DownloadLedgerService(mock_session)

    with pytest.raises(HTTPException) as exc_info:
        await service.record_download(
            user,
            PresetRef(category="premium", preset_key="warm_pop"),
            credit_cost=5,
            now=NOW,
        )

    assert exc_info.value.status_code == 402
    mock_session.add.assert_not_called()
    mock_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_free_preset_without_window_is_not_tracked(mock_session, user):
    mock_session.execute.side_effect = [scalars_result([])]
    service = DownloadLedgerService(mock_session)

    record = await service.record_download(
        user,
        PresetRef(category="premium", preset_key="freebie"),
        credit_cost=0,
        now=NOW,
    )

    assert record is None
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_history_with_cleanup_returns_grouped_active_records(mock_session):
    expired = make_download("premium", NOW - FREE_REDOWNLOAD_WINDOW_MS - 1)
    active = make_download("instrument", NOW - MS_PER_HOUR)
    mock_session.execute.side_effect = [
        scalars_result([active, expired]),
        MagicMock(),
        scalars_result([active]),
    ]
    service = DownloadLedgerService(mock_session)

    history = await service.get_download_history_with_cleanup("user-1", NOW)

    assert history["removed_count"] == 1
    assert history["categories"] == ["instrument"]
    assert history["downloads"][0]["is_expired"] is False
    assert history["downloads"][0]["remaining_label"] == "2 days 23 hours left"
