from typing import List

from sqlalchemy.orm import Session

from chatsql.crud.base import CRUDBase
from chatsql.models.db_connection import DBConnection
from chatsql.schemas.db_connection import DBConnectionCreate, DBConnectionUpdate


class CRUDDBConnection(CRUDBase[DBConnection, DBConnectionCreate, DBConnectionUpdate]):
    def get_all(self, db: Session) -> List[DBConnection]:
        """按创建时间升序返回所有连接"""
        return (
            db.query(self.model)
            .order_by(self.model.created_time.asc(), self.model.id.asc())
            .all()
        )

    def exists(self, db: Session, *, id: str) -> bool:
        return db.query(self.model.id).filter(self.model.id == id).first() is not None


db_connection = CRUDDBConnection(DBConnection)
