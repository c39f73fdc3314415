"""
测试公共夹具
"""
import os

from cryptography.fernet import Fernet

# 测试中不写日志文件
os.environ["LOG_FILE"] = ""
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient

from reportai.database import Database, set_database
from reportai.services.llm_service import LLMService
from reportai.services.report_service import ReportService, set_report_service
from reportai.services.dto import ReportStructure, Section
from reportai.services.auth_service import AuthService


@pytest.fixture
def database(tmp_path):
    """基于临时SQLite文件的数据库"""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.create_tables()
    set_database(db)
    yield db
    set_database(None)
    db.engine.dispose()


@pytest.fixture
def sample_structure():
    return ReportStructure(
        title="Q3 Sales Overview",
        sections=[
            Section(id="summary", title="Summary", type="text", content="Sales grew."),
            Section(id="revenue", title="Revenue by Month", type="chart", chart_type="line"),
            Section(id="top-products", title="Top Products", type="table"),
        ],
        insights=["Revenue up 12%", "Electronics lead growth"],
    )


@pytest.fixture
def mock_llm_service(sample_structure):
    """创建模拟的LLM服务"""
    llm = Mock(spec=LLMService)
    llm.default_model = "gemini/gemini-2.5-pro"
    llm.generate_report_structure = AsyncMock(return_value=sample_structure)
    llm.generate_report_insights = AsyncMock(return_value=["Insight A", "Insight B", "Insight C"])
    llm.generate_section_content = AsyncMock(return_value="Generated paragraph.")
    return llm


@pytest.fixture
def report_service(database, mock_llm_service):
    service = ReportService(database, mock_llm_service)
    set_report_service(service)
    yield service
    set_report_service(None)


@pytest.fixture
def user(database):
    return AuthService(database).register(
        username="alice",
        email="alice@example.com",
        password="s3cret",
        first_name="Alice",
        last_name="Smith",
    )


@pytest.fixture
def client(report_service):
    from reportai.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def logged_in_client(client):
    """已注册并登录的客户端"""
    response = client.post("/api/auth/register", json={
        "username": "bob",
        "email": "bob@example.com",
        "password": "hunter2",
    })
    assert response.status_code == 200
    client.user_id = response.json()["user"]["id"]
    return client
