"""
数据源服务
数据源的增删查，以及OAuth回调后的连接状态更新
"""
import uuid
from typing import List, Any, Dict, Optional

from ..database import Database
from ..models.data_source import DataSource
from ..models.report import Report
from ..utils.datetime_helper import utc_now, to_iso_string
from ..utils.logger import get_logger
from .encryption_service import EncryptionService, get_encryption_service
from .errors import NotFoundError, ValidationError

logger = get_logger(__name__)


def serialize_data_source(data_source: DataSource) -> Dict[str, Any]:
    """数据源信息（令牌不出服务端）"""
    return {
        "id": data_source.id,
        "name": data_source.name,
        "type": data_source.type,
        "is_connected": bool(data_source.is_connected),
        "last_sync_at": to_iso_string(data_source.last_sync_at),
        "created_at": to_iso_string(data_source.created_at),
        "updated_at": to_iso_string(data_source.updated_at),
    }


class DataSourceService:
    """数据源服务类"""

    def __init__(self, database: Database, encryption: Optional[EncryptionService] = None):
        self.db = database
        self.encryption = encryption or get_encryption_service()

    def list_data_sources(self, user_id: str) -> List[DataSource]:
        with self.db.get_session() as session:
            return session.query(DataSource).filter(
                DataSource.user_id == user_id
            ).order_by(DataSource.created_at.desc()).all()

    def get_data_source(self, user_id: str, data_source_id: str) -> DataSource:
        """
        获取用户自己的数据源

        Raises:
            NotFoundError: 不存在或属于其他用户
        """
        with self.db.get_session() as session:
            data_source = session.query(DataSource).filter(DataSource.id == data_source_id).first()

        if not data_source or data_source.user_id != user_id:
            raise NotFoundError("Data source not found")
        return data_source

    def create_data_source(self, user_id: str, name: str, source_type: str) -> DataSource:
        """新建数据源，初始状态总是未连接"""
        if not name or not name.strip():
            raise ValidationError("Data source name is required")
        if not source_type or not source_type.strip():
            raise ValidationError("Data source type is required")

        data_source = DataSource(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name.strip(),
            type=source_type.strip(),
            is_connected=False,
        )
        with self.db.get_session() as session:
            session.add(data_source)

        logger.info(f"数据源创建成功: id={data_source.id}, type={data_source.type}")
        return data_source

    def delete_data_source(self, user_id: str, data_source_id: str) -> None:
        self.get_data_source(user_id, data_source_id)
        with self.db.get_session() as session:
            # 解除报表引用后再删除
            session.query(Report).filter(Report.data_source_id == data_source_id).update(
                {Report.data_source_id: None}, synchronize_session=False
            )
            session.query(DataSource).filter(DataSource.id == data_source_id).delete()
        logger.info(f"数据源删除成功: id={data_source_id}")

    def connect_oauth(self, user_id: str, provider: str, tokens: Any) -> DataSource:
        """
        OAuth回调完成后，将用户该类型的数据源标记为已连接

        已存在同类型数据源时更新，否则新建一个
        """
        now = utc_now()
        encrypted = self.encryption.encrypt_json(tokens)

        with self.db.get_session() as session:
            data_source = session.query(DataSource).filter(
                DataSource.user_id == user_id,
                DataSource.type == provider
            ).order_by(DataSource.created_at.desc()).first()

            if data_source is None:
                data_source = DataSource(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    name=f"{provider[:1].upper()}{provider[1:]} Integration",
                    type=provider,
                )
                session.add(data_source)
                logger.info(f"OAuth回调创建数据源: user={user_id}, provider={provider}")
            else:
                logger.info(f"OAuth回调更新数据源: id={data_source.id}, provider={provider}")

            data_source.is_connected = True
            data_source.encrypted_oauth_tokens = encrypted
            data_source.last_sync_at = now

        return data_source
