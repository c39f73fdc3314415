"""
API接口测试
"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from reportai.models.user import User


def canvas_components():
    return [
        {
            "id": "header-1700000000000",
            "component": {"id": "header", "type": "basic", "name": "Header", "icon": "fas fa-heading", "color": "text-indigo-600"},
            "position": {"x": 24, "y": 16},
            "size": {"width": 600, "height": 80},
        },
        {
            "id": "pie-chart-1700000000100",
            "component": {"id": "pie-chart", "type": "chart", "name": "Pie Chart", "config": {"series": [1, 2, 3]}},
            "position": {"x": 24.5, "y": 120},
            "size": {"width": 300, "height": 200},
        },
    ]


class TestAuthApi:
    """测试认证接口"""

    def test_requires_login(self, client):
        response = client.get("/api/reports")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_register_login_logout(self, client):
        response = client.post("/api/auth/register", json={
            "username": "dave",
            "email": "dave@example.com",
            "password": "pw",
            "first_name": "Dave",
        })
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["subscription_tier"] == "free"
        assert "password" not in user

        assert client.get("/api/auth/me").json()["user"]["id"] == user["id"]

        assert client.post("/api/auth/logout").json() == {"message": "Logged out successfully"}
        assert client.get("/api/auth/me").status_code == 401

        response = client.post("/api/auth/login", json={"email": "dave@example.com", "password": "pw"})
        assert response.status_code == 200
        assert client.get("/api/auth/me").status_code == 200

    def test_duplicate_register(self, logged_in_client):
        response = logged_in_client.post("/api/auth/register", json={
            "username": "bob",
            "email": "bob@example.com",
            "password": "x",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    def test_invalid_credentials(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "x"})
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid credentials"}

    def test_request_validation_error(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@example.com"})
        assert response.status_code == 400
        assert "message" in response.json()


class TestReportsApi:
    """测试报表接口"""

    def test_generate_report(self, logged_in_client, mock_llm_service):
        response = logged_in_client.post("/api/reports/generate", json={"ai_prompt": "Show Q3 sales"})

        assert response.status_code == 200
        body = response.json()
        report = body["report"]
        assert report["status"] == "generated"
        assert report["page_count"] == len(body["structure"]["sections"]) == len(report["components"])
        assert report["generated_content"]["insights"] == body["structure"]["insights"]

        stats = logged_in_client.get("/api/users/stats").json()
        assert stats["reports_generated"] == 1
        assert stats["api_requests"] == 1

    def test_quota_exceeded_before_model_call(self, logged_in_client, database, mock_llm_service):
        with database.get_session() as session:
            session.query(User).filter(User.id == logged_in_client.user_id).update({"api_usage": 100})

        response = logged_in_client.post("/api/reports/generate", json={"ai_prompt": "Show Q3 sales"})

        assert response.status_code == 429
        assert response.json() == {"message": "API usage limit exceeded"}
        mock_llm_service.generate_report_structure.assert_not_called()

    def test_generate_ignores_client_model(self, logged_in_client, mock_llm_service):
        response = logged_in_client.post("/api/reports/generate", json={
            "ai_prompt": "Show Q3 sales",
            "model": "openai/gpt-4o",
        })

        assert response.status_code == 200
        mock_llm_service.generate_report_structure.assert_awaited_once()
        assert mock_llm_service.generate_report_structure.await_args.kwargs["model"] is None

    def test_generate_for_deleted_user(self, logged_in_client, database, mock_llm_service):
        with database.get_session() as session:
            session.query(User).filter(User.id == logged_in_client.user_id).delete()

        response = logged_in_client.post("/api/reports/generate", json={"ai_prompt": "Show Q3 sales"})

        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}
        mock_llm_service.generate_report_structure.assert_not_called()

    def test_generate_requires_prompt(self, logged_in_client):
        response = logged_in_client.post("/api/reports/generate", json={"ai_prompt": ""})
        assert response.status_code == 400

    def test_save_canvas_empty_rejected(self, logged_in_client):
        response = logged_in_client.post("/api/reports/save-canvas", json={"title": "Empty", "components": []})

        assert response.status_code == 400
        assert response.json() == {"message": "Add some components to your report before saving"}
        assert logged_in_client.get("/api/reports").json() == []

    def test_save_canvas_requires_components_array(self, logged_in_client):
        response = logged_in_client.post("/api/reports/save-canvas", json={"title": "Board"})
        assert response.status_code == 400
        assert response.json() == {"message": "Components array is required"}

    def test_download_round_trip(self, logged_in_client):
        components = canvas_components()
        saved = logged_in_client.post("/api/reports/save-canvas", json={
            "title": "Weekly KPIs",
            "description": "Team dashboard",
            "components": components,
        }).json()
        assert saved["status"] == "draft"
        assert saved["page_count"] == 1

        response = logged_in_client.get(f"/api/reports/{saved['id']}/download")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="Weekly_KPIs_report.json"'
        downloaded = json.loads(response.content)
        assert downloaded["title"] == "Weekly KPIs"
        assert downloaded["description"] == "Team dashboard"
        assert downloaded["components"] == components

        assert logged_in_client.get("/api/users/stats").json()["downloads_count"] == 1

    def test_download_keeps_surrounding_whitespace(self, logged_in_client):
        saved = logged_in_client.post("/api/reports/save-canvas", json={
            "title": "  Q3 Review ",
            "description": " notes\n",
            "components": canvas_components(),
        }).json()
        assert saved["title"] == "  Q3 Review "

        response = logged_in_client.get(f"/api/reports/{saved['id']}/download")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="__Q3_Review__report.json"'
        downloaded = json.loads(response.content)
        assert downloaded["title"] == "  Q3 Review "
        assert downloaded["description"] == " notes\n"

    def test_crud(self, logged_in_client):
        saved = logged_in_client.post("/api/reports/save-canvas", json={
            "title": "Board",
            "components": canvas_components(),
        }).json()

        assert [r["id"] for r in logged_in_client.get("/api/reports/recent").json()] == [saved["id"]]
        assert logged_in_client.get(f"/api/reports/{saved['id']}").json()["title"] == "Board"

        updated = logged_in_client.put(f"/api/reports/{saved['id']}", json={"status": "published"})
        assert updated.json()["status"] == "published"

        assert logged_in_client.delete(f"/api/reports/{saved['id']}").status_code == 204
        response = logged_in_client.get(f"/api/reports/{saved['id']}")
        assert response.status_code == 404
        assert response.json() == {"message": "Report not found"}

    def test_section_content(self, logged_in_client):
        report = logged_in_client.post("/api/reports/generate", json={"ai_prompt": "Show Q3 sales"}).json()["report"]

        response = logged_in_client.post(
            f"/api/reports/{report['id']}/sections/summary/content",
            json={"data": {"q3": 120}},
        )

        assert response.status_code == 200
        sections = {s["id"]: s for s in response.json()["components"]}
        assert sections["summary"]["content"] == "Generated paragraph."

    def test_insights(self, logged_in_client):
        report = logged_in_client.post("/api/reports/generate", json={"ai_prompt": "Show Q3 sales"}).json()["report"]

        response = logged_in_client.post(f"/api/reports/{report['id']}/insights", json={"data": [{"q3": 120}]})

        assert response.status_code == 200
        assert response.json()["generated_content"]["insights"] == ["Insight A", "Insight B", "Insight C"]


class TestCanvasApi:
    """测试画布接口"""

    def test_palette(self, client):
        palette = client.get("/api/canvas/components").json()
        assert {"basic", "chart", "graph"} <= set(palette.keys())

    def test_export(self, logged_in_client):
        response = logged_in_client.post("/api/canvas/export", json={"title": "Draft", "components": canvas_components()})

        assert response.status_code == 200
        assert response.json()["components"] == canvas_components()


class TestDataSourcesApi:
    """测试数据源和OAuth接口"""

    def test_data_source_crud(self, logged_in_client):
        created = logged_in_client.post("/api/data-sources", json={"name": "Store", "type": "shopify"}).json()
        assert created["is_connected"] is False

        assert [ds["id"] for ds in logged_in_client.get("/api/data-sources").json()] == [created["id"]]
        assert logged_in_client.delete(f"/api/data-sources/{created['id']}").status_code == 204
        assert logged_in_client.get(f"/api/data-sources/{created['id']}").status_code == 404

    def test_oauth_redirect(self, logged_in_client):
        response = logged_in_client.get("/api/oauth/shopify/auth", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://accounts.shopify.com/oauth/authorize?")

    def test_oauth_unknown_provider(self, logged_in_client):
        response = logged_in_client.get("/api/oauth/myspace/auth", follow_redirects=False)
        assert response.status_code == 400

    def test_oauth_callback_missing_code(self, client):
        response = client.get("/api/oauth/google/callback", params={"state": "u:google"}, follow_redirects=False)
        assert response.status_code == 400

    def test_oauth_callback(self, logged_in_client, monkeypatch):
        monkeypatch.delenv("FRONTEND_URL", raising=False)
        exchange = AsyncMock(return_value={"access_token": "tok"})

        with patch("reportai.services.oauth_service.exchange_code_for_tokens", new=exchange):
            response = logged_in_client.get(
                "/api/oauth/google/callback",
                params={"code": "abc", "state": f"{logged_in_client.user_id}:google"},
                follow_redirects=False,
            )

        assert response.status_code == 302
        assert response.headers["location"] == "http://localhost:5000/data-sources?connected=google"
        sources = logged_in_client.get("/api/data-sources").json()
        assert [(ds["type"], ds["is_connected"]) for ds in sources] == [("google", True)]
        assert logged_in_client.get("/api/users/stats").json()["data_sources_connected"] == 1


class TestUploadApi:
    """测试文件上传接口"""

    def test_upload(self, logged_in_client):
        response = logged_in_client.post("/api/upload", files=[
            ("files", ("sales.csv", b"region,total\nEU,10\nUS,20\n", "text/csv")),
            ("files", ("extra.json", b'{"a": 1}', "application/json")),
        ])

        assert response.status_code == 200
        files = response.json()["files"]
        assert files[0]["columns"] == ["region", "total"]
        assert files[0]["row_count"] == 2
        assert files[1]["preview"] == [{"a": 1}]

    def test_upload_invalid_type(self, logged_in_client):
        response = logged_in_client.post("/api/upload", files=[("files", ("notes.txt", b"hi", "text/plain"))])
        assert response.status_code == 400

    def test_upload_too_large(self, logged_in_client, monkeypatch):
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "10")
        response = logged_in_client.post("/api/upload", files=[
            ("files", ("big.csv", b"region,total\n" + b"EU,10\n" * 50, "text/csv")),
        ])

        assert response.status_code == 400
        assert response.json() == {"message": "File too large: big.csv"}


def test_billing_not_configured(logged_in_client, monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    response = logged_in_client.post("/api/create-subscription")
    assert response.status_code == 400
    assert response.json() == {"message": "Stripe is not configured"}


@pytest.mark.parametrize("path", ["/", "/health"])
def test_health(client, path):
    assert client.get(path).status_code == 200


def test_no_pool_status_endpoint(client):
    assert client.get("/api/system/db-pool-status").status_code == 404
