"""
工具返回统一格式

所有工具门面操作都返回 ToolResponse，错误不会以异常形式越过门面边界。
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ToolResponse(BaseModel):
    """
    统一的工具返回格式

    Attributes:
        status: 执行状态 - "success" (成功), "error" (错误)
        data: 成功时的数据负载
        error: 人类可读的错误信息，仅在 status="error" 时使用
        error_type: 错误类别（validation_error / not_found / persistence_failure / ...）
        metadata: 附加元数据（connection_id、row_count 等）

    Examples:
        >>> ToolResponse(status="success", data={"rows": []}, metadata={"connection_id": "c1"})
        >>> ToolResponse(status="error", error="未找到数据库连接: c9", error_type="not_found")
    """
    status: Literal["success", "error"] = Field(
        description="执行状态：success=成功, error=错误"
    )
    data: Optional[Any] = Field(default=None, description="成功时的数据负载")
    error: Optional[str] = Field(default=None, description="错误信息（仅当 status='error' 时使用）")
    error_type: Optional[str] = Field(default=None, description="错误类别")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="附加元数据")

    @classmethod
    def success(cls, data: Any = None, **metadata: Any) -> "ToolResponse":
        return cls(status="success", data=data, metadata=metadata or None)

    @classmethod
    def failure(cls, error: str, error_type: str, **metadata: Any) -> "ToolResponse":
        return cls(status="error", error=error, error_type=error_type, metadata=metadata or None)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def __str__(self) -> str:
        """返回 JSON 字符串，便于直接作为 LLM 工具输出"""
        return self.model_dump_json()
