"""数据库连接相关的 Pydantic 模型"""
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DBConnectionBase(BaseModel):
    """连接基础模型"""
    name: str = Field(..., min_length=1, max_length=255, description="连接名称")
    db_type: str = Field(..., min_length=1, max_length=50, description="数据库类型，如 mysql / postgresql / sqlite")
    server: Optional[str] = Field(None, max_length=255)
    port: Optional[int] = Field(None, ge=1, le=65535)
    database: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, max_length=255)
    connection_string: Optional[str] = Field(None, description="原始连接字符串，可替代 server/port/database")
    description: Optional[str] = None


class DBConnectionCreate(DBConnectionBase):
    """创建连接"""
    id: Optional[str] = Field(None, min_length=1, max_length=100, description="不传则自动生成")
    password: Optional[str] = None

    @model_validator(mode="after")
    def require_target(self) -> "DBConnectionCreate":
        """server 和 connection_string 至少提供一个"""
        if not (self.server or "").strip() and not (self.connection_string or "").strip():
            raise ValueError("server 和 connection_string 至少需要提供一个")
        return self


class DBConnectionUpdate(BaseModel):
    """更新连接（id 不可修改）"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    db_type: Optional[str] = Field(None, min_length=1, max_length=50)
    server: Optional[str] = Field(None, max_length=255)
    port: Optional[int] = Field(None, ge=1, le=65535)
    database: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None
    connection_string: Optional[str] = None
    description: Optional[str] = None


class DBConnection(DBConnectionBase):
    """连接响应（不包含密码）"""
    id: str
    created_time: datetime
    update_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DBConnectionSummary(BaseModel):
    """工具接口返回的连接摘要"""
    id: str
    name: str
    db_type: str
    database: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
