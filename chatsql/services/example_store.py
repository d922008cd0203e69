"""
问答示例存储 (Example Store)

维护每个数据库连接下经过验证的 问题 -> SQL 示例：

1. 手动创建（manual）或由用户修正错误回答生成（correction，记录原始错误 SQL）
2. 启用/禁用、分类、关键词搜索
3. 使用统计（usage_count 只增不减），供召回排序使用
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import uuid

from sqlalchemy.orm import sessionmaker

from chatsql import crud
from chatsql.core.exceptions import NotFoundError
from chatsql.db.session import session_scope
from chatsql.schemas.qa_example import (
    ExampleSource, QAExample, QAExampleCreate, QAExampleUpdate
)
from chatsql.schemas.utils import coerce_schema

logger = logging.getLogger(__name__)

CORRECTION_CATEGORY = "correction"
CORRECTION_DESCRIPTION = "用户修正生成的示例"


class ExampleStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    # ==================== 创建 ====================

    def create(self, example: Union[QAExampleCreate, Dict[str, Any]]) -> QAExample:
        """
        创建问答示例

        Raises:
            ValidationError: 问题或 SQL 为空；修正来源缺少 original_incorrect_sql
        """
        data = coerce_schema(QAExampleCreate, example)
        values = data.model_dump()
        values["id"] = data.id or uuid.uuid4().hex
        values["source"] = data.source.value
        values["usage_count"] = 0
        values["created_time"] = datetime.now()

        with self._session() as db:
            obj = crud.qa_example.create(db, obj_in=values)
            result = QAExample.model_validate(obj)

        logger.info(
            f"Created QA example: {result.question} "
            f"(id={result.id}, connection_id={result.connection_id}, source={result.source.value})"
        )
        return result

    def create_from_correction(
        self,
        connection_id: str,
        question: str,
        correct_sql: str,
        incorrect_sql: str,
        description: Optional[str] = None,
        created_by: str = "system"
    ) -> QAExample:
        """
        从用户修正中创建问答示例

        Args:
            connection_id: 数据库连接ID
            question: 用户问题
            correct_sql: 修正后的正确 SQL
            incorrect_sql: 被用户否定的原始 SQL（必填）
            description: 示例描述，默认 "用户修正生成的示例"
        """
        return self.create({
            "connection_id": connection_id,
            "question": question,
            "sql_query": correct_sql,
            "description": description or CORRECTION_DESCRIPTION,
            "category": CORRECTION_CATEGORY,
            "source": ExampleSource.CORRECTION,
            "original_incorrect_sql": incorrect_sql,
            "created_by": created_by,
        })

    # ==================== 查询 ====================

    def get(self, example_id: str) -> QAExample:
        with self._session() as db:
            obj = crud.qa_example.get(db, example_id)
            if obj is None:
                raise NotFoundError(f"未找到问答示例: {example_id}")
            return QAExample.model_validate(obj)

    def get_enabled(self, connection_id: str) -> List[QAExample]:
        with self._session() as db:
            rows = crud.qa_example.get_enabled(db, connection_id=connection_id)
            return [QAExample.model_validate(r) for r in rows]

    def get_all(self, connection_id: str) -> List[QAExample]:
        with self._session() as db:
            rows = crud.qa_example.get_by_connection(db, connection_id=connection_id)
            return [QAExample.model_validate(r) for r in rows]

    def get_by_category(self, connection_id: str, category: str) -> List[QAExample]:
        """指定分类下启用的示例"""
        with self._session() as db:
            rows = crud.qa_example.get_by_category(db, connection_id=connection_id, category=category)
            return [QAExample.model_validate(r) for r in rows]

    def search(self, connection_id: str, keyword: Optional[str]) -> List[QAExample]:
        """
        关键词搜索

        关键词为空时等同于 get_enabled；否则返回问题、SQL 或描述中
        包含该关键词（区分大小写的子串）的启用示例。
        """
        with self._session() as db:
            rows = crud.qa_example.search(db, connection_id=connection_id, keyword=keyword)
            return [QAExample.model_validate(r) for r in rows]

    def count(self, connection_id: Optional[str] = None, enabled_only: bool = False) -> int:
        with self._session() as db:
            return crud.qa_example.count_by_connection(
                db, connection_id=connection_id, enabled_only=enabled_only
            )

    # ==================== 更新 ====================

    def record_usage(self, example_id: str, connection_id: Optional[str] = None) -> QAExample:
        """
        记录一次使用：usage_count 加 1，刷新 last_used_time / update_time

        递增在单条 UPDATE 语句中完成，同一示例的并发调用不会丢失计数。

        Raises:
            NotFoundError: 示例不存在（或不属于指定连接）
        """
        now = datetime.now()
        with self._session() as db:
            matched = crud.qa_example.increment_usage(
                db, id=example_id, now=now, connection_id=connection_id
            )
            if matched == 0:
                raise NotFoundError(f"未找到问答示例: {example_id}")
            obj = crud.qa_example.get(db, example_id)
            db.refresh(obj)
            return QAExample.model_validate(obj)

    def update(self, example_id: str, changes: Union[QAExampleUpdate, Dict[str, Any]]) -> QAExample:
        """更新问题、SQL、描述、分类或启用状态"""
        data = coerce_schema(QAExampleUpdate, changes)
        update_data = data.model_dump(exclude_unset=True)
        # 显式传 None 的必填字段视为未修改
        for field in ("question", "sql_query", "is_enabled"):
            if update_data.get(field, "") is None:
                update_data.pop(field)

        with self._session() as db:
            obj = crud.qa_example.get(db, example_id)
            if obj is None:
                raise NotFoundError(f"未找到问答示例: {example_id}")
            update_data["update_time"] = datetime.now()
            obj = crud.qa_example.update(db, db_obj=obj, obj_in=update_data)
            result = QAExample.model_validate(obj)

        logger.info(f"Updated QA example: {example_id}")
        return result

    def batch_set_enabled(
        self,
        example_ids: Sequence[str],
        is_enabled: bool,
        connection_id: Optional[str] = None
    ) -> int:
        """
        批量启用/禁用

        Returns:
            实际更新的示例数；example_ids 为空时返回 0 且不做任何写入

        Raises:
            NotFoundError: 传入的 ID 一个都不存在或全部为空
        """
        if not example_ids:
            return 0
        ids = [i for i in dict.fromkeys(example_ids) if i]
        if not ids:
            raise NotFoundError("未找到任何问答示例: 传入的 ID 均为空")

        with self._session() as db:
            updated = crud.qa_example.set_enabled_batch(
                db, ids=ids, is_enabled=is_enabled, now=datetime.now(), connection_id=connection_id
            )
            if updated == 0:
                raise NotFoundError(f"未找到任何问答示例: {', '.join(ids)}")

        logger.info(f"Set is_enabled={is_enabled} on {updated}/{len(ids)} QA examples")
        return updated

    # ==================== 删除 ====================

    def delete(self, example_id: str) -> None:
        with self._session() as db:
            if crud.qa_example.remove(db, id=example_id) is None:
                raise NotFoundError(f"未找到问答示例: {example_id}")
        logger.info(f"Deleted QA example: {example_id}")

    def delete_by_connection(self, connection_id: str) -> int:
        with self._session() as db:
            deleted = crud.qa_example.remove_by_connection(db, connection_id=connection_id)
        if deleted == 0:
            logger.warning(f"No QA examples found for connection {connection_id}")
        else:
            logger.info(f"Deleted {deleted} QA examples for connection {connection_id}")
        return deleted
