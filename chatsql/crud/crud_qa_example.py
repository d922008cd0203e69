from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import case
from sqlalchemy.orm import Session

from chatsql.crud.base import CRUDBase
from chatsql.models.qa_example import QAExample
from chatsql.schemas.qa_example import QAExampleCreate, QAExampleUpdate


def _later_of(column, now: datetime):
    """SET column = max(column, now)，NULL 视为最早"""
    return case(
        (column.is_(None), now),
        (column < now, now),
        else_=column,
    )


class CRUDQAExample(CRUDBase[QAExample, QAExampleCreate, QAExampleUpdate]):
    def _by_connection(self, db: Session, connection_id: str):
        return db.query(self.model).filter(self.model.connection_id == connection_id)

    def _ordered(self, query):
        return query.order_by(self.model.created_time.asc(), self.model.id.asc())

    def get_by_connection(self, db: Session, *, connection_id: str) -> List[QAExample]:
        return self._ordered(self._by_connection(db, connection_id)).all()

    def get_enabled(self, db: Session, *, connection_id: str) -> List[QAExample]:
        query = self._by_connection(db, connection_id).filter(self.model.is_enabled == True)
        return self._ordered(query).all()

    def get_by_category(self, db: Session, *, connection_id: str, category: str) -> List[QAExample]:
        query = self._by_connection(db, connection_id).filter(
            self.model.category == category,
            self.model.is_enabled == True
        )
        return self._ordered(query).all()

    def search(self, db: Session, *, connection_id: str, keyword: Optional[str]) -> List[QAExample]:
        """
        在启用的示例中按关键词搜索（区分大小写的子串匹配）

        LIKE 在 SQLite / MySQL 默认排序规则下不区分大小写，
        因此在已按连接过滤的启用集合上做 Python 侧匹配。
        """
        enabled = self.get_enabled(db, connection_id=connection_id)
        if not keyword:
            return enabled
        return [
            e for e in enabled
            if keyword in e.question
            or keyword in e.sql_query
            or (e.description and keyword in e.description)
        ]

    def increment_usage(
        self, db: Session, *, id: str, now: datetime, connection_id: Optional[str] = None
    ) -> int:
        """
        单条 UPDATE 语句完成 usage_count + 1，并发递增不会丢失

        Returns:
            匹配的行数（0 表示示例不存在）
        """
        query = db.query(self.model).filter(self.model.id == id)
        if connection_id is not None:
            query = query.filter(self.model.connection_id == connection_id)
        return query.update(
            {
                self.model.usage_count: self.model.usage_count + 1,
                self.model.last_used_time: _later_of(self.model.last_used_time, now),
                self.model.update_time: _later_of(self.model.update_time, now),
            },
            synchronize_session=False,
        )

    def set_enabled_batch(
        self,
        db: Session,
        *,
        ids: Sequence[str],
        is_enabled: bool,
        now: datetime,
        connection_id: Optional[str] = None
    ) -> int:
        query = db.query(self.model).filter(self.model.id.in_(list(ids)))
        if connection_id is not None:
            query = query.filter(self.model.connection_id == connection_id)
        return query.update(
            {self.model.is_enabled: is_enabled, self.model.update_time: now},
            synchronize_session=False,
        )

    def count_by_connection(
        self, db: Session, *, connection_id: Optional[str] = None, enabled_only: bool = False
    ) -> int:
        query = db.query(self.model)
        if connection_id is not None:
            query = query.filter(self.model.connection_id == connection_id)
        if enabled_only:
            query = query.filter(self.model.is_enabled == True)
        return query.count()

    def remove_by_connection(self, db: Session, *, connection_id: str) -> int:
        return self._by_connection(db, connection_id).delete(synchronize_session=False)


qa_example = CRUDQAExample(QAExample)
