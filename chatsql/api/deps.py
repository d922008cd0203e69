from fastapi import HTTPException, Request

from chatsql.services.connection_registry import ConnectionRegistry
from chatsql.services.tool_facade import ToolFacade


def get_tool_facade(request: Request) -> ToolFacade:
    facade = getattr(request.app.state, "tool_facade", None)
    if facade is None:
        raise HTTPException(status_code=503, detail="Tool facade is not configured")
    return facade


def get_registry(request: Request) -> ConnectionRegistry:
    """连接管理只依赖元数据存储，不要求注入 ToolFacade"""
    return request.app.state.registry
