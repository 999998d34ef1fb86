from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.download.service import DownloadLedgerService
from app.api.preset.filters import PresetFilters
from app.api.preset.service import PresetMetadata
from app.app import get_app
from app.database import db_session
from app.schemas import CurrentUser


@pytest.fixture
def app():
    app = get_app()
    app.dependency_overrides[db_session] = lambda: AsyncMock(spec=AsyncSession)
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        uid="user-1", email="user@example.com"
    )
    return app


@pytest.fixture
def content_service():
    service = MagicMock()
    service.get_preset_metadata = AsyncMock(
        return_value=PresetMetadata(
            id="premium_warm_pop",
            category="premium",
            preset_key="warm_pop",
            name="Warm Pop",
            description=None,
            filters=PresetFilters.from_raw(None),
            credit_cost=5,
        )
    )
    service.get_download_url = AsyncMock(
        return_value={
            "key": "premium/warm_pop/full_preset.zip",
            "url": "https://bucket.s3.amazonaws.com/premium/warm_pop/full_preset.zip?sig=1",
        }
    )
    with patch(
        "app.api.download.route.PresetContentService", return_value=service
    ):
        yield service


def test_download_charges_manifest_cost(app, content_service):
    body = {"category": "premium", "preset_key": "warm_pop", "credit_cost": 0}

    with patch.object(
        DownloadLedgerService, "record_download", new_callable=AsyncMock, return_value=None
    ) as record_download:
        response = TestClient(app).post("/api/v1/download/preset", json=body)

    assert response.status_code == 200
    assert response.json()["payload"]["download_url"].endswith("?sig=1")
    kwargs = record_download.await_args.kwargs
    assert kwargs["credit_cost"] == 5
    assert kwargs["preset_name"] == "Warm Pop"
    content_service.get_preset_metadata.assert_awaited_once_with("premium", "warm_pop")


def test_download_of_unknown_preset_is_not_found(app, content_service):
    content_service.get_preset_metadata.return_value = None
    body = {"category": "premium", "preset_key": "missing"}

    with patch.object(
        DownloadLedgerService, "record_download", new_callable=AsyncMock
    ) as record_download:
        response = TestClient(app).post("/api/v1/download/preset", json=body)

    assert response.status_code == 404
    assert response.json()["success"] is False
    record_download.assert_not_awaited()
    content_service.get_download_url.assert_not_awaited()
