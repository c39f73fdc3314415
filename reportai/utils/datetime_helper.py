"""
日期时间辅助工具
用于统一处理时间序列化，确保前端能正确识别时区
"""
from datetime import datetime, timezone
from typing import Optional


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """
    将 datetime 对象转换为 ISO 8601 格式字符串（带 UTC 时区标识）
    
    Args:
        dt: datetime 对象（可以为 None）
        
    Returns:
        ISO 8601 格式字符串，带 'Z' 后缀表示 UTC 时区
        如果输入为 None，返回 None
        
    Examples:
        >>> dt = datetime(2024, 11, 3, 6, 30, 0)
        >>> to_iso_string(dt)
        '2024-11-03T06:30:00Z'
    """
    if dt is None:
        return None
    
    # 没有时区信息的时间按 UTC 处理（数据库中统一存储 UTC）
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    
    dt_utc = dt.astimezone(timezone.utc)
    
    return dt_utc.replace(microsecond=0).isoformat().replace('+00:00', 'Z')


def utc_now() -> datetime:
    """
    获取当前 UTC 时间（不带时区信息，与数据库列保持一致）
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(dt: datetime) -> datetime:
    """
    返回给定时间所在自然月的起点

    >>> month_start(datetime(2024, 11, 3, 6, 30))
    datetime.datetime(2024, 11, 1, 0, 0)
    """
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
