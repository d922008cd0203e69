"""
统一异常定义

所有服务层异常都继承自 ChatSqlError，并携带 error_type，
工具门面据此生成结构化错误响应（ToolResponse.error_type）。
"""
from typing import Optional


class ChatSqlError(Exception):
    error_type = "internal_error"

    def __init__(self, message: str, description: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.description = description


class ValidationError(ChatSqlError):
    """必填字段缺失或字段组合不合法，在任何持久化操作之前抛出"""
    error_type = "validation_error"


class ConnectionInUseError(ValidationError):
    """删除仍被聊天记录或问答示例引用的连接"""


class NotFoundError(ChatSqlError):
    error_type = "not_found"


class PersistenceError(ChatSqlError):
    """底层存储不可用或写入被拒绝，不做内部重试"""
    error_type = "persistence_failure"


class ExecutionError(ChatSqlError):
    """由 SQL 执行协作方抛出"""
    error_type = "execution_error"


class GenerationError(ChatSqlError):
    """由 SQL 生成协作方抛出"""
    error_type = "generation_error"
