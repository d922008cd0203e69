"""
连接注册表 (Connection Registry)

保存数据库连接配置，连接是聊天记录和问答示例的租户边界。

删除策略：
- 默认不级联。仍有聊天记录或问答示例引用该连接时拒绝删除（ConnectionInUseError）
- cascade=True 时依次清空聊天记录、问答示例，最后删除连接，每一步独立事务
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import logging
import uuid

from sqlalchemy.orm import sessionmaker

from chatsql import crud
from chatsql.core.exceptions import ConnectionInUseError, NotFoundError, ValidationError
from chatsql.db.session import session_scope
from chatsql.schemas.db_connection import DBConnection, DBConnectionCreate, DBConnectionUpdate
from chatsql.schemas.utils import coerce_schema

logger = logging.getLogger(__name__)


class ConnectionRegistry:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    def create(self, config: Union[DBConnectionCreate, Dict[str, Any]]) -> str:
        """
        创建连接配置

        Returns:
            连接ID（未指定时自动生成）

        Raises:
            ValidationError: 字段缺失，或指定的 ID 已存在
        """
        data = coerce_schema(DBConnectionCreate, config)
        values = data.model_dump()
        values["id"] = data.id or uuid.uuid4().hex
        values["created_time"] = datetime.now()

        with self._session() as db:
            if crud.db_connection.exists(db, id=values["id"]):
                raise ValidationError(f"连接ID已存在: {values['id']}")
            crud.db_connection.create(db, obj_in=values)

        logger.info(f"Created connection: {data.name} (id={values['id']}, db_type={data.db_type})")
        return values["id"]

    def get(self, connection_id: str) -> DBConnection:
        with self._session() as db:
            obj = crud.db_connection.get(db, connection_id)
            if obj is None:
                raise NotFoundError(f"未找到数据库连接: {connection_id}")
            return DBConnection.model_validate(obj)

    def exists(self, connection_id: str) -> bool:
        with self._session() as db:
            return crud.db_connection.exists(db, id=connection_id)

    def list(self) -> List[DBConnection]:
        with self._session() as db:
            return [DBConnection.model_validate(c) for c in crud.db_connection.get_all(db)]

    def count(self) -> int:
        with self._session() as db:
            return crud.db_connection.count(db)

    def update(
        self, connection_id: str, changes: Union[DBConnectionUpdate, Dict[str, Any]]
    ) -> DBConnection:
        """更新连接配置（单条记录原子更新，ID 不可修改）"""
        data = coerce_schema(DBConnectionUpdate, changes)
        update_data = data.model_dump(exclude_unset=True)

        with self._session() as db:
            obj = crud.db_connection.get(db, connection_id)
            if obj is None:
                raise NotFoundError(f"未找到数据库连接: {connection_id}")

            server = update_data.get("server", obj.server)
            connection_string = update_data.get("connection_string", obj.connection_string)
            if not (server or "").strip() and not (connection_string or "").strip():
                raise ValidationError("server 和 connection_string 至少需要保留一个")

            update_data["update_time"] = datetime.now()
            obj = crud.db_connection.update(db, db_obj=obj, obj_in=update_data)
            result = DBConnection.model_validate(obj)

        logger.info(f"Updated connection: {connection_id}")
        return result

    def delete(self, connection_id: str, cascade: bool = False) -> None:
        """
        删除连接

        Args:
            connection_id: 连接ID
            cascade: 是否先清空该连接下的聊天记录和问答示例

        Raises:
            NotFoundError: 连接不存在
            ConnectionInUseError: 未指定 cascade 且仍有依赖记录
        """
        with self._session() as db:
            if not crud.db_connection.exists(db, id=connection_id):
                raise NotFoundError(f"未找到数据库连接: {connection_id}")
            turns = crud.chat_message.count_by_connection(db, connection_id=connection_id)
            examples = crud.qa_example.count_by_connection(db, connection_id=connection_id)

        if turns or examples:
            if not cascade:
                raise ConnectionInUseError(
                    f"连接 {connection_id} 仍有 {turns} 条聊天记录和 {examples} 个问答示例，"
                    f"请先清理或使用 cascade 删除"
                )
            with self._session() as db:
                crud.chat_message.remove_by_connection(db, connection_id=connection_id)
            with self._session() as db:
                crud.qa_example.remove_by_connection(db, connection_id=connection_id)
            logger.info(
                f"Cascade purge for connection {connection_id}: "
                f"{turns} chat turns, {examples} examples"
            )

        with self._session() as db:
            if crud.db_connection.remove(db, id=connection_id) is None:
                raise NotFoundError(f"未找到数据库连接: {connection_id}")

        logger.info(f"Deleted connection: {connection_id}")
