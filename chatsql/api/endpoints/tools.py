"""
工具接口

HTTP 层只负责把请求转交给 ToolFacade。连接 ID 从查询参数 connectionId（或 id）中读取，
由 SessionContextResolver 统一解析；错误以 ToolResponse(status="error") 返回，HTTP 状态码始终为 200。
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from chatsql.api import deps
from chatsql.schemas.tool_response import ToolResponse
from chatsql.services.tool_facade import ToolFacade

router = APIRouter()


class GenerateSqlRequest(BaseModel):
    question: str
    execute: bool = False


class ExecuteSqlRequest(BaseModel):
    sql: str
    max_rows: Optional[int] = Field(100, description="最大返回行数，超过服务端上限时按上限截断")


class CorrectionRequest(BaseModel):
    question: str
    correct_sql: str
    incorrect_sql: str
    description: Optional[str] = None


@router.get("/connections", response_model=ToolResponse)
def list_connections(request: Request, facade: ToolFacade = Depends(deps.get_tool_facade)) -> Any:
    return facade.list_connections(params=dict(request.query_params))


@router.get("/schema", response_model=ToolResponse)
def get_schema(request: Request, facade: ToolFacade = Depends(deps.get_tool_facade)) -> Any:
    return facade.get_schema(params=dict(request.query_params))


@router.get("/schema/{table_name}", response_model=ToolResponse)
def get_table_structure(
    table_name: str,
    request: Request,
    facade: ToolFacade = Depends(deps.get_tool_facade),
) -> Any:
    return facade.get_table_structure(table_name, params=dict(request.query_params))


@router.post("/generate-sql", response_model=ToolResponse)
def generate_sql(
    body: GenerateSqlRequest,
    request: Request,
    facade: ToolFacade = Depends(deps.get_tool_facade),
) -> Any:
    return facade.generate_sql(body.question, execute=body.execute, params=dict(request.query_params))


@router.post("/execute-sql", response_model=ToolResponse)
def execute_sql(
    body: ExecuteSqlRequest,
    request: Request,
    facade: ToolFacade = Depends(deps.get_tool_facade),
) -> Any:
    return facade.execute_sql(body.sql, max_rows=body.max_rows, params=dict(request.query_params))


@router.get("/history", response_model=ToolResponse)
def get_chat_history(
    request: Request,
    limit: Optional[int] = None,
    facade: ToolFacade = Depends(deps.get_tool_facade),
) -> Any:
    return facade.get_chat_history(limit=limit, params=dict(request.query_params))


@router.get("/status", response_model=ToolResponse)
def get_status(request: Request, facade: ToolFacade = Depends(deps.get_tool_facade)) -> Any:
    return facade.get_status(params=dict(request.query_params))


@router.post("/corrections", response_model=ToolResponse)
def submit_correction(
    body: CorrectionRequest,
    request: Request,
    facade: ToolFacade = Depends(deps.get_tool_facade),
) -> Any:
    return facade.submit_correction(
        body.question,
        body.correct_sql,
        body.incorrect_sql,
        description=body.description,
        params=dict(request.query_params),
    )
