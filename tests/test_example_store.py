"""
问答示例存储测试

测试内容：
- 创建校验（必填字段、修正来源）
- 查询、分类、关键词搜索
- 使用统计（含并发递增）
- 批量启用/禁用、更新、删除
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from chatsql.core.exceptions import NotFoundError, ValidationError
from chatsql.db.init_db import init_db
from chatsql.schemas.qa_example import ExampleSource
from chatsql.services.example_store import ExampleStore


def _example(connection_id="c1", **overrides):
    data = {
        "connection_id": connection_id,
        "question": "查询所有客户",
        "sql_query": "SELECT * FROM customers",
    }
    data.update(overrides)
    return data


class TestCreateExample:

    def test_manual_defaults(self, example_store, c1):
        example = example_store.create(_example())
        assert example.source == ExampleSource.MANUAL
        assert example.is_enabled is True
        assert example.usage_count == 0
        assert example.last_used_time is None
        assert example.original_incorrect_sql is None

    @pytest.mark.parametrize("field", ["question", "sql_query"])
    def test_required_fields(self, example_store, c1, field):
        with pytest.raises(ValidationError):
            example_store.create(_example(**{field: "  "}))
        assert example_store.count(c1) == 0

    def test_correction_requires_original_sql(self, example_store, c1):
        with pytest.raises(ValidationError, match="original_incorrect_sql"):
            example_store.create(_example(source="correction"))
        assert example_store.count(c1) == 0

    def test_manual_cannot_carry_original_sql(self, example_store, c1):
        with pytest.raises(ValidationError):
            example_store.create(_example(original_incorrect_sql="SELECT wrong"))

    def test_create_from_correction(self, example_store, c1):
        example = example_store.create_from_correction(
            c1,
            question="上个月的订单数",
            correct_sql="SELECT COUNT(*) FROM orders WHERE month = 12",
            incorrect_sql="SELECT COUNT(*) FROM order",
        )
        assert example.source == ExampleSource.CORRECTION
        assert example.original_incorrect_sql == "SELECT COUNT(*) FROM order"
        assert example.category == "correction"
        assert example.description == "用户修正生成的示例"
        assert example.created_by == "system"

    def test_create_from_correction_without_original(self, example_store, c1):
        with pytest.raises(ValidationError):
            example_store.create_from_correction(c1, "q", "SELECT 1", "")


class TestQueryExamples:

    def test_enabled_and_category(self, example_store, c1):
        a = example_store.create(_example(category="sales"))
        b = example_store.create(_example(category="sales", is_enabled=False))
        example_store.create(_example(category="stock"))

        assert b.id not in [e.id for e in example_store.get_enabled(c1)]
        assert len(example_store.get_all(c1)) == 3
        assert [e.id for e in example_store.get_by_category(c1, "sales")] == [a.id]
        assert example_store.count(c1) == 3
        assert example_store.count(c1, enabled_only=True) == 2

    def test_get_unknown(self, example_store):
        with pytest.raises(NotFoundError):
            example_store.get("missing")

    def test_isolated_per_connection(self, example_store, c1, c2):
        example_store.create(_example(c1))
        assert example_store.get_enabled(c2) == []
        assert example_store.search(c2, "客户") == []

    def test_search_case_sensitive(self, example_store, c1):
        upper = example_store.create(_example(question="Top customers", sql_query="SELECT name FROM Customers"))
        example_store.create(_example(question="订单数", sql_query="SELECT COUNT(*) FROM orders"))

        assert [e.id for e in example_store.search(c1, "Customers")] == [upper.id]
        assert example_store.search(c1, "CUSTOMERS") == []

    def test_search_matches_description(self, example_store, c1):
        example = example_store.create(_example(description="按地区汇总"))
        assert [e.id for e in example_store.search(c1, "地区")] == [example.id]

    def test_search_skips_disabled(self, example_store, c1):
        example_store.create(_example(is_enabled=False))
        assert example_store.search(c1, "客户") == []

    def test_empty_keyword_returns_enabled(self, example_store, c1):
        example_store.create(_example())
        example_store.create(_example(is_enabled=False))
        assert len(example_store.search(c1, "")) == 1
        assert len(example_store.search(c1, None)) == 1


class TestRecordUsage:

    def test_increments_and_timestamps(self, example_store, c1):
        example = example_store.create(_example())
        used = example_store.record_usage(example.id)
        assert used.usage_count == 1
        assert used.last_used_time is not None
        assert used.update_time is not None

        again = example_store.record_usage(example.id)
        assert again.usage_count == 2
        assert again.last_used_time >= used.last_used_time

    def test_unknown_example(self, example_store):
        with pytest.raises(NotFoundError):
            example_store.record_usage("missing")

    def test_scoped_to_connection(self, example_store, c1, c2):
        example = example_store.create(_example(c1))
        with pytest.raises(NotFoundError):
            example_store.record_usage(example.id, connection_id=c2)
        assert example_store.get(example.id).usage_count == 0

    def test_concurrent_increments_not_lost(self, tmp_path):
        """并发调用 record_usage，计数等于调用次数，最近使用时间与更新时间一致"""
        engine = create_engine(
            f"sqlite:///{tmp_path / 'usage.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        init_db(engine)
        store = ExampleStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
        example = store.create(_example())

        calls = 20
        before = datetime.now()
        with ThreadPoolExecutor(max_workers=5) as pool:
            list(pool.map(lambda _: store.record_usage(example.id), range(calls)))

        final = store.get(example.id)
        assert final.usage_count == calls
        assert final.last_used_time is not None
        assert final.last_used_time >= before
        assert final.last_used_time == final.update_time
        engine.dispose()


class TestUpdateAndToggle:

    def test_update_fields(self, example_store, c1):
        example = example_store.create(_example())
        updated = example_store.update(example.id, {"sql_query": "SELECT id FROM customers", "category": "crm"})
        assert updated.sql_query == "SELECT id FROM customers"
        assert updated.category == "crm"
        assert updated.update_time is not None
        assert updated.source == ExampleSource.MANUAL

    def test_update_keeps_usage(self, example_store, c1):
        example = example_store.create(_example())
        example_store.record_usage(example.id)
        updated = example_store.update(example.id, {"usage_count": 0, "question": "新问题"})
        assert updated.usage_count == 1
        assert updated.question == "新问题"

    def test_update_blank_question_rejected(self, example_store, c1):
        example = example_store.create(_example())
        with pytest.raises(ValidationError):
            example_store.update(example.id, {"question": " "})

    def test_update_unknown(self, example_store):
        with pytest.raises(NotFoundError):
            example_store.update("missing", {"category": "x"})

    def test_batch_empty_is_noop(self, example_store, c1):
        example_store.create(_example())
        assert example_store.batch_set_enabled([], False) == 0
        assert example_store.count(c1, enabled_only=True) == 1

    def test_batch_none_found(self, example_store, c1):
        with pytest.raises(NotFoundError):
            example_store.batch_set_enabled(["x", "y"], False)

    def test_batch_blank_ids_not_found(self, example_store, c1):
        """ID 全为空字符串时报错，不视为空操作"""
        example_store.create(_example())
        with pytest.raises(NotFoundError):
            example_store.batch_set_enabled(["", ""], False)
        assert example_store.count(c1, enabled_only=True) == 1

    def test_batch_partial(self, example_store, c1):
        a = example_store.create(_example())
        b = example_store.create(_example())
        assert example_store.batch_set_enabled([a.id, b.id, "missing"], False) == 2
        assert example_store.get_enabled(c1) == []
        assert example_store.get(a.id).update_time is not None


class TestDeleteExamples:

    def test_delete(self, example_store, c1):
        example = example_store.create(_example())
        example_store.delete(example.id)
        with pytest.raises(NotFoundError):
            example_store.get(example.id)
        with pytest.raises(NotFoundError):
            example_store.delete(example.id)

    def test_delete_by_connection(self, example_store, c1, c2):
        example_store.create(_example(c1))
        example_store.create(_example(c1))
        example_store.create(_example(c2))
        assert example_store.delete_by_connection(c1) == 2
        assert example_store.delete_by_connection(c1) == 0
        assert example_store.count(c2) == 1
