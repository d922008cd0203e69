"""问答示例相关的 Pydantic 模型"""
from enum import Enum
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ExampleSource(str, Enum):
    """示例来源"""
    MANUAL = "manual"          # 手动创建
    CORRECTION = "correction"  # 用户修正生成


class QAExampleBase(BaseModel):
    question: str = Field(..., description="用户问题")
    sql_query: str = Field(..., description="对应的SQL查询")
    description: Optional[str] = Field(None, description="示例说明/描述")
    category: Optional[str] = Field(None, max_length=100, description="示例分类/标签")
    is_enabled: bool = Field(True, description="是否启用")

    @field_validator("question", "sql_query")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if v is None or not v.strip():
            raise ValueError("不能为空")
        return v


class QAExampleCreate(QAExampleBase):
    """
    创建问答示例

    source=correction 时必须携带 original_incorrect_sql；
    source=manual 时不允许携带。
    """
    id: Optional[str] = Field(None, max_length=64)
    connection_id: str = Field(..., max_length=100)
    source: ExampleSource = ExampleSource.MANUAL
    original_incorrect_sql: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)

    @field_validator("connection_id")
    @classmethod
    def connection_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("connection_id 不能为空")
        return v

    @model_validator(mode="after")
    def check_correction_lineage(self) -> "QAExampleCreate":
        has_original = bool(self.original_incorrect_sql and self.original_incorrect_sql.strip())
        if self.source == ExampleSource.CORRECTION and not has_original:
            raise ValueError("修正来源的示例必须提供 original_incorrect_sql")
        if self.source == ExampleSource.MANUAL and self.original_incorrect_sql is not None:
            raise ValueError("手动创建的示例不能携带 original_incorrect_sql")
        return self


class QAExampleUpdate(BaseModel):
    """更新问答示例（来源、修正记录、使用统计不可通过更新修改）"""
    question: Optional[str] = None
    sql_query: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    is_enabled: Optional[bool] = None

    @field_validator("question", "sql_query")
    @classmethod
    def not_blank_if_set(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("不能为空")
        return v


class QAExample(QAExampleBase):
    id: str
    connection_id: str
    source: ExampleSource
    original_incorrect_sql: Optional[str] = None
    usage_count: int = Field(0, ge=0, description="使用次数")
    last_used_time: Optional[datetime] = None
    created_time: datetime
    update_time: Optional[datetime] = None
    created_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ScoredExample(BaseModel):
    """召回结果：示例 + 词汇相关度"""
    example: QAExample
    score: float
