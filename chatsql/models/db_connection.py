from sqlalchemy import Column, DateTime, Integer, String, Text

from chatsql.db.base_class import Base


class DBConnection(Base):
    """
    数据库连接配置

    租户边界：聊天记录和问答示例都只通过 connection_id 引用连接，
    不建立外键，也不做级联删除。
    """
    __tablename__ = "db_connections"

    id = Column(String(100), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    db_type = Column(String(50), nullable=False)
    server = Column(String(255), nullable=True)
    port = Column(Integer, nullable=True)
    database = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    password = Column(String(255), nullable=True)
    connection_string = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_time = Column(DateTime, nullable=False)
    update_time = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<DBConnection(id='{self.id}', name='{self.name}', db_type='{self.db_type}')>"
