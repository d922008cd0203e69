import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatsql.api.api import api_router
from chatsql.core.config import settings
from chatsql.services.connection_registry import ConnectionRegistry
from chatsql.services.tool_facade import ToolFacade

logger = logging.getLogger(__name__)


def create_app(
    tool_facade: Optional[ToolFacade] = None,
    registry: Optional[ConnectionRegistry] = None
) -> FastAPI:
    """
    创建 FastAPI 应用

    schema / 生成 / 执行协作方由部署方实现，组装好的 ToolFacade 通过参数注入；
    未注入时工具接口返回 503，连接管理接口仍可用。

    Args:
        tool_facade: 工具门面
        registry: 连接注册表，默认使用门面的注册表，没有门面时基于 SessionLocal 创建
    """
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Connection-scoped example store and conversational memory for Text2SQL",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.API_PREFIX)
    app.state.tool_facade = tool_facade
    if registry is None:
        registry = tool_facade.registry if tool_facade is not None else ConnectionRegistry()
    app.state.registry = registry

    if tool_facade is None:
        logger.warning("ToolFacade 未注入，工具接口将不可用")
    return app


if __name__ == "__main__":
    from chatsql.db.init_db import init_db

    init_db()
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
