"""聊天记录相关的 Pydantic 模型"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class ChatTurnCreate(BaseModel):
    """追加一条聊天记录"""
    id: Optional[str] = Field(None, max_length=64)
    connection_id: str = Field(..., max_length=100)
    message: str
    is_user: bool = False
    sql_query: Optional[str] = None
    execution_error: Optional[str] = None
    query_result: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="查询结果行，必须由同一条记录中的 sql_query 产生"
    )
    created_time: Optional[datetime] = None

    @field_validator("connection_id", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if v is None or not v.strip():
            raise ValueError("不能为空")
        return v

    @model_validator(mode="after")
    def check_assistant_fields(self) -> "ChatTurnCreate":
        if self.is_user and self.sql_query:
            raise ValueError("用户消息不能携带 sql_query")
        if self.query_result and not self.sql_query:
            raise ValueError("query_result 必须与产生它的 sql_query 一起保存")
        return self


class ChatTurn(BaseModel):
    """
    聊天记录

    query_result_json 是持久化的原始文本；query_result 是读取时重新解析出的视图，
    文本损坏时为空列表。
    """
    id: str
    connection_id: str
    message: str
    is_user: bool
    sql_query: Optional[str] = None
    execution_error: Optional[str] = None
    query_result_json: Optional[str] = None
    query_result: List[Dict[str, Any]] = Field(default_factory=list)
    created_time: datetime
