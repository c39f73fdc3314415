"""
日志配置模块

所有模块通过 get_logger(__name__) 获取记录器；处理器只挂在根名称 "reportai" 上，
子记录器（reportai.services.xxx）沿层级向上传递。
"""
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .datetime_helper import to_iso_string, utc_now

ROOT_LOGGER_NAME = "reportai"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class DetailedFormatter(logging.Formatter):
    """在标准格式后追加 extra_context（用户、提供方、模型等）"""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        context = getattr(record, "extra_context", None)
        if context:
            formatted += f"\n上下文信息: {context}"
        return formatted


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(DetailedFormatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        log_level: 日志级别，默认取 LOG_LEVEL（INFO）
        log_file: 日志文件路径，默认取 LOG_FILE；空字符串表示只输出到控制台
        console_output: 是否输出到控制台

    Returns:
        配置好的日志记录器
    """
    level = getattr(logging, (log_level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    if log_file is None:
        log_file = os.getenv("LOG_FILE", "./logs/reportai.log")

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        # 文件中保留DEBUG级别，便于排查模型和OAuth问题
        logger.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG))

    if console_output:
        logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    获取日志记录器

    根记录器尚未配置时先按环境变量配置一次
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        setup_logger(ROOT_LOGGER_NAME)
    return logging.getLogger(name)


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: Exception,
    context: Optional[Dict[str, Any]] = None
):
    """
    记录错误并附带上下文

    Args:
        logger: 日志记录器
        message: 错误描述
        error: 异常对象
        context: 额外的上下文信息（如用户ID、提供方、模型）
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": to_iso_string(utc_now()),
        **(context or {}),
    }
    logger.error(f"{message}: {error}", exc_info=error, extra={"extra_context": details})


def log_llm_error(logger: logging.Logger, model: str, prompt: str, error: Exception):
    """记录模型调用失败，提示词截断到500字符"""
    log_error_with_context(logger, "LLM服务调用失败", error, {
        "model": model,
        "prompt": prompt[:500] if prompt else None,
    })


def log_oauth_error(logger: logging.Logger, provider: str, error: Exception, user_id: Optional[str] = None):
    """记录OAuth令牌交换失败"""
    log_error_with_context(logger, "OAuth令牌交换失败", error, {
        "provider": provider,
        "user_id": user_id,
    })
