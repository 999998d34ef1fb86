from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.admin.service import AdminService
from app.api.deps import get_current_user
from app.app import get_app
from app.config import settings
from app.database import db_session
from app.schemas import CurrentUser


@pytest.fixture
def app():
    app = get_app()
    app.dependency_overrides[db_session] = lambda: AsyncMock(spec=AsyncSession)
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        uid="admin-1", email="admin@mixpreset.com"
    )
    return app


def test_non_admin_is_denied(app):
    with patch.object(settings, "ADMIN_EMAILS", ["someone@else.com"]):
        response = TestClient(app).get("/api/v1/admin/metrics")

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_check_reports_capability(app):
    client = TestClient(app)

    with patch.object(settings, "ADMIN_EMAILS", ["admin@mixpreset.com"]):
        assert client.get("/api/v1/admin/check").json()["payload"] == {"is_admin": True}

    with patch.object(settings, "ADMIN_EMAILS", []):
        assert client.get("/api/v1/admin/check").json()["payload"] == {"is_admin": False}


def test_metrics_rejects_unknown_time_range(app):
    with patch.object(settings, "ADMIN_EMAILS", ["admin@mixpreset.com"]):
        response = TestClient(app).get("/api/v1/admin/metrics?time_range=decade")

    assert response.status_code == 422


def test_downloads_export_is_csv(app):
    csv_content = "User ID,User Email,Category,Preset Name,Filename,Credit Cost,Download Time\n"

    with patch.object(settings, "ADMIN_EMAILS", ["admin@mixpreset.com"]), patch.object(
        AdminService,
        "export_downloads_csv",
        new_callable=AsyncMock,
        return_value=csv_content,
    ):
        response = TestClient(app).get("/api/v1/admin/downloads/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert response.text == csv_content
