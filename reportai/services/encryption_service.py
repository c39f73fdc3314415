"""
加密服务
用于加密和解密敏感信息（OAuth令牌等）
"""
import os
import json
from cryptography.fernet import Fernet
from typing import Any, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


class EncryptionService:
    """加密服务类"""

    def __init__(self, key: Optional[bytes] = None):
        """
        初始化加密服务

        Args:
            key: 加密密钥（32字节URL安全的base64编码字符串）
                 如果为None，则从环境变量ENCRYPTION_KEY读取
                 如果环境变量也不存在，则生成新密钥（进程重启后旧密文将无法解密）
        """
        if key is None:
            key_str = os.getenv("ENCRYPTION_KEY")
            if key_str:
                key = key_str.encode()
            else:
                key = Fernet.generate_key()
                logger.warning("未找到ENCRYPTION_KEY环境变量，已生成临时密钥，请在.env中配置固定密钥")

        self.cipher = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """
        加密字符串

        Args:
            plaintext: 明文字符串

        Returns:
            加密后的字符串（base64编码）
        """
        if not plaintext:
            return ""

        encrypted_bytes = self.cipher.encrypt(plaintext.encode())
        return encrypted_bytes.decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        解密字符串

        Raises:
            cryptography.fernet.InvalidToken: 如果密文无效或密钥错误
        """
        if not ciphertext:
            return ""

        decrypted_bytes = self.cipher.decrypt(ciphertext.encode())
        return decrypted_bytes.decode()

    def encrypt_json(self, payload: Any) -> Optional[str]:
        """将任意可JSON序列化的对象加密为字符串，None原样返回"""
        if payload is None:
            return None
        return self.encrypt(json.dumps(payload, ensure_ascii=False))

    def decrypt_json(self, ciphertext: Optional[str]) -> Any:
        """解密encrypt_json的结果"""
        if not ciphertext:
            return None
        return json.loads(self.decrypt(ciphertext))

    @staticmethod
    def generate_key() -> str:
        """生成新的加密密钥"""
        return Fernet.generate_key().decode()


# 全局加密服务实例
_encryption_service = None


def get_encryption_service() -> EncryptionService:
    """获取全局加密服务实例"""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
