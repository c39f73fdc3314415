"""
数据库初始化和连接管理
"""
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
from typing import Generator

from .models.base import Base
from .models import (  # noqa: F401  注册所有表
    User,
    DataSource,
    Report,
    ReportExport,
)
from .utils.logger import get_logger

logger = get_logger(__name__)


class Database:
    """数据库管理类"""
    
    def __init__(self, db_url: str = None):
        """
        初始化数据库连接
        
        Args:
            db_url: 数据库URL，如果为None则从环境变量DATABASE_URL读取，
                    仍未设置则使用项目data目录下的SQLite文件
        """
        if db_url is None:
            db_url = os.getenv("DATABASE_URL")
        
        if not db_url:
            project_root = Path(__file__).resolve().parent.parent
            db_path = project_root / "data" / "reportai.db"
            os.makedirs(db_path.parent, exist_ok=True)
            db_url = f"sqlite:///{db_path}"
        
        pool_config = {
            "poolclass": QueuePool,
            "pool_size": 20,
            "max_overflow": 40,
            "pool_timeout": 30,
            "pool_recycle": 3600,  # 1小时后回收连接
            "pool_pre_ping": True,
            "echo": False,
        }
        
        # SQLite特殊配置
        if db_url.startswith("sqlite"):
            pool_config["connect_args"] = {"check_same_thread": False}
        
        self.engine = create_engine(db_url, **pool_config)
        
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False  # 提交后不过期对象，便于在会话外序列化
        )
    
    def create_tables(self):
        """创建所有表"""
        Base.metadata.create_all(bind=self.engine)
    
    def drop_tables(self):
        """删除所有表（谨慎使用）"""
        Base.metadata.drop_all(bind=self.engine)
    
    @contextmanager
    def get_session(self) -> Generator[SQLAlchemySession, None, None]:
        """
        获取数据库会话的上下文管理器
        
        Yields:
            SQLAlchemy会话对象
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# 全局数据库实例
_db_instance = None


def get_database() -> Database:
    """获取全局数据库实例"""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance


def set_database(database: Database) -> None:
    """替换全局数据库实例（测试或多库部署时使用）"""
    global _db_instance
    _db_instance = database


def init_database():
    """初始化数据库（创建所有表）"""
    db = get_database()
    db.create_tables()
    logger.info("数据库初始化完成")


if __name__ == "__main__":
    init_database()
