from fastapi import APIRouter

from chatsql.api.endpoints import connections, tools

api_router = APIRouter()


@api_router.get("/")
async def api_root():
    """API根路径"""
    return {
        "message": "chatsql API",
        "status": "running",
        "endpoints": {
            "connections": "/api/connections/",
            "tools": "/api/tools/",
            "docs": "/docs",
        }
    }

api_router.include_router(connections.router, prefix="/connections", tags=["connections"])
api_router.include_router(tools.router, prefix="/tools", tags=["tools"])
