from typing import List, Optional

from sqlalchemy.orm import Session

from chatsql.crud.base import CRUDBase
from chatsql.models.chat_message import ChatMessage
from chatsql.schemas.chat_message import ChatTurnCreate


class CRUDChatMessage(CRUDBase[ChatMessage, ChatTurnCreate, ChatTurnCreate]):
    def get_by_connection(self, db: Session, *, connection_id: str) -> List[ChatMessage]:
        """按创建时间升序返回某连接下的全部聊天记录"""
        return (
            db.query(self.model)
            .filter(self.model.connection_id == connection_id)
            .order_by(self.model.created_time.asc(), self.model.id.asc())
            .all()
        )

    def get_recent(self, db: Session, *, connection_id: str, limit: int) -> List[ChatMessage]:
        """最近的 limit 条聊天记录，按创建时间倒序"""
        return (
            db.query(self.model)
            .filter(self.model.connection_id == connection_id)
            .order_by(self.model.created_time.desc(), self.model.id.desc())
            .limit(limit)
            .all()
        )

    def count_by_connection(self, db: Session, *, connection_id: Optional[str] = None) -> int:
        query = db.query(self.model)
        if connection_id is not None:
            query = query.filter(self.model.connection_id == connection_id)
        return query.count()

    def remove_by_connection(self, db: Session, *, connection_id: str) -> int:
        return (
            db.query(self.model)
            .filter(self.model.connection_id == connection_id)
            .delete(synchronize_session=False)
        )


chat_message = CRUDChatMessage(ChatMessage)
