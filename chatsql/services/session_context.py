"""
会话上下文解析 (Session Context Resolver)

将一次工具调用映射到具体的数据库连接。解析顺序：

1. 调用方显式传入的 connection_id
2. 请求参数中的 connectionId，其次是 id（兼容旧客户端）
3. 注入的默认连接 ID
4. 以上都无法得到已注册的连接时抛出 NotFoundError，并指明缺失的标识

所有工具门面操作在访问存储之前都必须先经过这里。
"""
from typing import Mapping, Optional
import logging

from chatsql.core.exceptions import NotFoundError, ValidationError
from chatsql.schemas.db_connection import DBConnection
from chatsql.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

MAX_CONNECTION_ID_LENGTH = 100
CONNECTION_ID_PARAMS = ("connectionId", "id")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class SessionContextResolver:

    def __init__(self, registry: ConnectionRegistry, default_connection_id: Optional[str] = None):
        self._registry = registry
        self.default_connection_id = _clean(default_connection_id)

    def resolve_id(
        self,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> str:
        """
        只确定连接标识，不检查是否已注册

        Raises:
            NotFoundError: 请求未携带标识且未配置默认连接
            ValidationError: 标识长度超过限制
        """
        candidate = _clean(connection_id)
        if candidate is None and params:
            for key in CONNECTION_ID_PARAMS:
                candidate = _clean(params.get(key))
                if candidate is not None:
                    break
        if candidate is None:
            candidate = self.default_connection_id
        if candidate is None:
            raise NotFoundError("请求未指定 connectionId，且未配置默认连接 (DEFAULT_CONNECTION_ID)")
        if len(candidate) > MAX_CONNECTION_ID_LENGTH:
            raise ValidationError(f"connectionId 长度不能超过 {MAX_CONNECTION_ID_LENGTH}")
        return candidate

    def resolve(
        self,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> DBConnection:
        """
        解析出本次调用所属的连接

        Raises:
            NotFoundError: 无法确定标识，或标识对应的连接不存在（错误信息包含该标识）
        """
        resolved_id = self.resolve_id(connection_id, params)
        try:
            return self._registry.get(resolved_id)
        except NotFoundError:
            logger.warning(f"Session context resolved to unknown connection: {resolved_id}")
            raise
