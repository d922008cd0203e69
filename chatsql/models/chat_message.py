from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from chatsql.db.base_class import Base


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(64), primary_key=True)
    connection_id = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_user = Column(Boolean, nullable=False, default=False)
    sql_query = Column(Text, nullable=True)            # 仅助手消息
    execution_error = Column(Text, nullable=True)      # 仅助手消息
    query_result_json = Column(Text, nullable=True)    # NULL 表示无结果
    created_time = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_chat_messages_connection_time", "connection_id", "created_time"),
    )

    def __repr__(self):
        return f"<ChatMessage(id='{self.id}', connection_id='{self.connection_id}', is_user={self.is_user})>"
