"""
日志工具与时间戳测试
"""
import logging
from datetime import datetime, timedelta
from unittest.mock import patch

from reportai.services.auth_service import AuthService
from reportai.utils.logger import DetailedFormatter, get_logger, log_error_with_context, log_llm_error
from reportai.utils.datetime_helper import utc_now


def test_child_logger_uses_root_handlers():
    logger = get_logger("reportai.services.sample")
    assert logger.name == "reportai.services.sample"
    assert logging.getLogger("reportai").handlers


def test_error_context_attached(caplog):
    logger = get_logger("reportai.tests.context")
    fixed = datetime(2024, 5, 1, 12, 0, 0)

    with patch("reportai.utils.logger.utc_now", return_value=fixed), caplog.at_level(logging.ERROR):
        log_error_with_context(logger, "同步失败", ValueError("boom"), {"user_id": "u-1"})

    record = caplog.records[-1]
    assert record.getMessage() == "同步失败: boom"
    assert record.extra_context == {
        "error_type": "ValueError",
        "error_message": "boom",
        "timestamp": "2024-05-01T12:00:00Z",
        "user_id": "u-1",
    }
    assert "上下文信息" in DetailedFormatter("%(message)s").format(record)


def test_llm_error_truncates_prompt(caplog):
    logger = get_logger("reportai.tests.llm")

    with caplog.at_level(logging.ERROR):
        log_llm_error(logger, "gemini/gemini-2.5-pro", "x" * 600, RuntimeError("timeout"))

    context = caplog.records[-1].extra_context
    assert context["model"] == "gemini/gemini-2.5-pro"
    assert len(context["prompt"]) == 500


def test_model_timestamps_are_naive_utc(database):
    before = utc_now()
    user = AuthService(database).register("erin", "erin@example.com", "pw")

    assert user.created_at.tzinfo is None
    assert before - timedelta(seconds=1) <= user.created_at <= utc_now() + timedelta(seconds=1)
