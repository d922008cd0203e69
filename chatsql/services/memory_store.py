"""
对话记忆存储 (Conversational Memory Store)

按数据库连接保存多轮对话，包括助手生成的 SQL、执行错误和缓存的查询结果。

- 记录只追加，不修改
- history() 按持久化的创建时间升序返回，与写入并发无关
- 查询结果以 JSON 文本持久化，读取时重新解析；文本损坏时降级为空结果并记录告警
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import logging
import uuid

from sqlalchemy.orm import sessionmaker

from chatsql import crud
from chatsql.core.exceptions import ValidationError
from chatsql.core.result_codec import deserialize_rows, serialize_rows
from chatsql.db.session import session_scope
from chatsql.models.chat_message import ChatMessage
from chatsql.schemas.chat_message import ChatTurn, ChatTurnCreate
from chatsql.schemas.utils import coerce_schema

logger = logging.getLogger(__name__)


class ConversationMemoryStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    def append(self, turn: Union[ChatTurnCreate, Dict[str, Any]]) -> ChatTurn:
        """
        追加一条聊天记录

        Raises:
            ValidationError: 缺少 connection_id / message，或查询结果无法序列化
        """
        data = coerce_schema(ChatTurnCreate, turn)
        try:
            result_json = serialize_rows(data.query_result)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"查询结果无法序列化: {e}") from e

        values = {
            "id": data.id or uuid.uuid4().hex,
            "connection_id": data.connection_id,
            "message": data.message,
            "is_user": data.is_user,
            "sql_query": data.sql_query,
            "execution_error": data.execution_error,
            "query_result_json": result_json,
            "created_time": data.created_time or datetime.now(),
        }
        with self._session() as db:
            row = crud.chat_message.create(db, obj_in=values)
            return self._to_schema(row)

    def history(self, connection_id: str) -> List[ChatTurn]:
        """某连接下的全部聊天记录，按创建时间升序；没有记录时返回空列表"""
        with self._session() as db:
            rows = crud.chat_message.get_by_connection(db, connection_id=connection_id)
            return [self._to_schema(r) for r in rows]

    def recent(self, connection_id: str, limit: int) -> List[ChatTurn]:
        """最近的 limit 条聊天记录，最新的在前"""
        if limit <= 0:
            return []
        with self._session() as db:
            rows = crud.chat_message.get_recent(db, connection_id=connection_id, limit=limit)
            return [self._to_schema(r) for r in rows]

    def clear(self, connection_id: str) -> int:
        """清空某连接的聊天记录（幂等），返回删除条数"""
        with self._session() as db:
            deleted = crud.chat_message.remove_by_connection(db, connection_id=connection_id)
        logger.info(f"Cleared {deleted} chat turns for connection {connection_id}")
        return deleted

    def count(self, connection_id: Optional[str] = None) -> int:
        with self._session() as db:
            return crud.chat_message.count_by_connection(db, connection_id=connection_id)

    @staticmethod
    def _to_schema(row: ChatMessage) -> ChatTurn:
        rows, ok = deserialize_rows(row.query_result_json)
        if not ok:
            logger.warning(
                f"聊天记录 {row.id} 的查询结果无法解析，按空结果处理 (connection_id={row.connection_id})"
            )
        return ChatTurn(
            id=row.id,
            connection_id=row.connection_id,
            message=row.message,
            is_user=row.is_user,
            sql_query=row.sql_query,
            execution_error=row.execution_error,
            query_result_json=row.query_result_json,
            query_result=rows,
            created_time=row.created_time,
        )
