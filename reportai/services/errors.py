"""
服务层异常
路由层据此映射HTTP状态码：ValidationError->400, NotAuthenticatedError->401,
NotFoundError->404, QuotaExceededError->429，其余异常->500
"""


class ServiceError(Exception):
    """服务层异常基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """请求参数不合法"""


class AuthenticationError(ServiceError):
    """凭据错误"""


class NotAuthenticatedError(ServiceError):
    """会话中的用户已不存在"""


class NotFoundError(ServiceError):
    """资源不存在或不属于当前用户"""


class QuotaExceededError(ServiceError):
    """API调用额度已用尽"""


class LLMServiceError(ServiceError):
    """生成模型调用失败或返回内容无法解析"""
