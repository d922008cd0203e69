"""
工具门面测试

协作方（Schema、生成、执行）使用内存实现替代
"""
import pytest

from chatsql.services.collaborators import SchemaProvider, SqlExecutor
from chatsql.services.example_retrieval import ExampleRetrievalEngine
from chatsql.services.session_context import SessionContextResolver
from chatsql.services.tool_facade import ToolFacade
from fakes import FakeExecutor, FakeGenerator, FakeSchemaProvider


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def make_facade(registry, memory_store, example_store, generator, executor):
    def _make(default_connection_id=None, generator=generator, executor=executor, schema_provider=None):
        return ToolFacade(
            registry=registry,
            memory_store=memory_store,
            example_store=example_store,
            retrieval=ExampleRetrievalEngine(example_store, top_k=3),
            resolver=SessionContextResolver(registry, default_connection_id),
            schema_provider=schema_provider or FakeSchemaProvider(),
            generator=generator,
            executor=executor,
            max_execute_rows=100,
            default_history_limit=20,
            max_message_history=10,
        )
    return _make


@pytest.fixture
def facade(make_facade, c1):
    return make_facade(default_connection_id=c1)


class TestConnections:

    def test_list_without_resolvable_connection(self, make_facade, c1, c2):
        response = make_facade().list_connections()
        assert response.ok
        assert [c["id"] for c in response.data] == ["c1", "c2"]
        assert response.metadata["connection_id"] is None
        assert all("password" not in c for c in response.data)

    def test_list_reports_resolved(self, make_facade, c1, c2):
        response = make_facade().list_connections(params={"connectionId": c2})
        assert response.metadata["connection_id"] == c2

    def test_get_schema(self, facade):
        response = facade.get_schema()
        assert response.ok
        assert response.data["tables"][0]["table_name"] == "orders"

    def test_get_schema_unknown_connection(self, make_facade):
        response = make_facade().get_schema(connection_id="c9")
        assert not response.ok
        assert response.error_type == "not_found"
        assert "c9" in response.error

    def test_get_schema_no_connection(self, make_facade):
        response = make_facade().get_schema()
        assert response.error_type == "not_found"

    def test_table_structure_case_insensitive(self, facade):
        assert facade.get_table_structure("ORDERS").data["table_name"] == "orders"
        assert facade.get_table_structure("customers").data["name"] == "Customers"

    def test_table_structure_missing(self, facade):
        response = facade.get_table_structure("nope")
        assert response.error_type == "not_found"


class TestGenerateSql:

    def test_generate_without_execute(self, facade, memory_store, executor, c1):
        response = facade.generate_sql("列出所有订单")
        assert response.ok
        assert response.data["sql"] == "SELECT * FROM orders"
        assert response.data["executed"] is False
        assert response.data["rows"] == []
        assert executor.calls == []

        turns = memory_store.history(c1)
        assert [t.is_user for t in turns] == [True, False]
        assert turns[0].message == "列出所有订单"
        assert turns[1].sql_query == "SELECT * FROM orders"
        assert turns[1].id == response.data["turn_id"]

    def test_generate_and_execute(self, facade, memory_store, executor, c1):
        response = facade.generate_sql("列出所有订单", execute=True)
        assert response.data["row_count"] == 3
        assert response.data["error"] is None
        assert executor.calls == [(c1, "SELECT * FROM orders", 100)]

        assistant = memory_store.history(c1)[-1]
        assert assistant.query_result == [{"id": 0}, {"id": 1}, {"id": 2}]
        assert "3 条记录" in assistant.message

    def test_execution_error_recorded(self, make_facade, memory_store, c1):
        facade = make_facade(default_connection_id=c1, executor=FakeExecutor(error="no such table"))
        response = facade.generate_sql("列出所有订单", execute=True)
        assert response.ok
        assert response.data["error"] == "no such table"
        assert response.data["sql"] == "SELECT * FROM orders"

        assistant = memory_store.history(c1)[-1]
        assert assistant.execution_error == "no such table"
        assert assistant.query_result == []

    def test_generation_error_recorded(self, make_facade, memory_store, c1):
        facade = make_facade(default_connection_id=c1, generator=FakeGenerator(error="模型不可用"))
        response = facade.generate_sql("列出所有订单")
        assert response.ok
        assert response.data["sql"] is None
        assert response.data["error"] == "模型不可用"

        turns = memory_store.history(c1)
        assert len(turns) == 2
        assert turns[1].sql_query is None
        assert turns[1].execution_error == "模型不可用"

    def test_blank_question(self, facade, memory_store, c1):
        response = facade.generate_sql("   ")
        assert response.error_type == "validation_error"
        assert memory_store.count(c1) == 0

    def test_examples_supplied_and_usage_recorded(self, facade, example_store, generator, c1):
        example = example_store.create({
            "connection_id": c1, "question": "列出所有订单", "sql_query": "SELECT * FROM orders",
        })
        response = facade.generate_sql("列出所有订单")

        assert response.data["example_ids"] == [example.id]
        assert [e.id for e in generator.calls[0]["examples"]] == [example.id]
        assert example_store.get(example.id).usage_count == 1

    def test_history_passed_as_context(self, facade, generator):
        facade.generate_sql("列出所有订单")
        facade.generate_sql("只要前10个")

        history = generator.calls[1]["history"]
        assert [m.content for m in history][0] == "列出所有订单"
        assert len(history) == 2
        assert "SELECT * FROM orders" in history[1].content

    def test_tenant_isolation(self, facade, memory_store, example_store, generator, c1, c2):
        other = example_store.create({
            "connection_id": c2, "question": "列出所有订单", "sql_query": "SELECT 2",
        })
        facade.generate_sql("列出所有订单", params={"connectionId": c2})
        facade.generate_sql("列出所有订单")

        assert memory_store.count(c2) == 2
        assert memory_store.count(c1) == 2
        # c1 的生成只能看到 c1 的示例和历史
        assert generator.calls[1]["examples"] == []
        assert generator.calls[1]["history"] == []
        assert example_store.get(other.id).usage_count == 1


class TestExecuteSql:

    def test_rows_capped(self, make_facade, c1):
        facade = make_facade(default_connection_id=c1, executor=FakeExecutor(rows=[{"i": i} for i in range(150)]))
        response = facade.execute_sql("SELECT * FROM big", max_rows=500)
        assert response.data["row_count"] == 100
        assert response.metadata["max_rows"] == 100

    def test_smaller_limit_respected(self, make_facade, c1):
        executor = FakeExecutor(rows=[{"i": i} for i in range(10)])
        facade = make_facade(default_connection_id=c1, executor=executor)
        response = facade.execute_sql("SELECT 1", max_rows=5)
        assert response.data["row_count"] == 5
        assert executor.calls[0][2] == 5

    def test_non_positive_limit_uses_cap(self, facade, executor):
        facade.execute_sql("SELECT 1", max_rows=0)
        assert executor.calls[0][2] == 100

    def test_execution_error_in_data(self, make_facade, memory_store, c1):
        facade = make_facade(default_connection_id=c1, executor=FakeExecutor(error="syntax error"))
        response = facade.execute_sql("SELEC 1")
        assert response.ok
        assert response.data == {"rows": [], "row_count": 0, "error": "syntax error"}
        assert memory_store.count(c1) == 0

    def test_blank_sql(self, facade):
        assert facade.execute_sql(" ").error_type == "validation_error"


class TestHistoryAndStatus:

    def test_history_most_recent_first(self, facade):
        facade.generate_sql("第一个问题")
        facade.generate_sql("第二个问题")

        response = facade.get_chat_history(limit=3)
        assert len(response.data) == 3
        assert response.data[0]["is_user"] is False
        assert response.data[1]["message"] == "第二个问题"
        assert "query_result_json" not in response.data[0]

    def test_history_default_limit(self, facade, memory_store, c1):
        for i in range(25):
            memory_store.append({"connection_id": c1, "message": f"m{i}"})
        assert len(facade.get_chat_history().data) == 20

    def test_status_scoped(self, make_facade, memory_store, example_store, c1, c2):
        memory_store.append({"connection_id": c1, "message": "a"})
        memory_store.append({"connection_id": c2, "message": "b"})
        memory_store.append({"connection_id": c2, "message": "c"})
        example_store.create({"connection_id": c2, "question": "q", "sql_query": "SELECT 1", "is_enabled": False})

        status = make_facade().get_status(params={"connectionId": c2}).data
        assert status == {"connections": 2, "chat_turns": 2, "examples": 1, "enabled_examples": 0}

    def test_status_without_connection(self, make_facade, c1):
        status = make_facade().get_status().data
        assert status == {"connections": 1}


class TestSubmitCorrection:

    def test_creates_correction_example(self, facade, example_store, c1):
        response = facade.submit_correction(
            "订单总数", "SELECT COUNT(*) FROM orders", "SELECT COUNT(*) FROM order",
        )
        assert response.ok
        assert response.data["source"] == "correction"
        assert response.data["original_incorrect_sql"] == "SELECT COUNT(*) FROM order"
        assert example_store.count(c1) == 1

    def test_missing_incorrect_sql(self, facade, example_store, c1):
        response = facade.submit_correction("订单总数", "SELECT 1", "")
        assert response.error_type == "validation_error"
        assert example_store.count(c1) == 0


class TestErrorBoundary:

    def test_unexpected_error_is_structured(self, make_facade, c1):
        class BrokenExecutor(SqlExecutor):
            def execute(self, connection_id, sql, max_rows):
                raise RuntimeError("driver crashed")

        response = make_facade(default_connection_id=c1, executor=BrokenExecutor()).execute_sql("SELECT 1")
        assert response.status == "error"
        assert response.error_type == "internal_error"
        assert response.metadata["operation"] == "execute_sql"

    def test_schema_failure_leaves_no_orphan_turn(self, make_facade, memory_store, generator, c1):
        """获取数据库结构失败时不留下没有回复的用户消息"""
        class BrokenSchemaProvider(SchemaProvider):
            def schema(self, connection_id):
                raise RuntimeError("schema service down")

        facade = make_facade(default_connection_id=c1, schema_provider=BrokenSchemaProvider())
        response = facade.generate_sql("列出所有订单")
        assert response.status == "error"
        assert response.error_type == "internal_error"
        assert memory_store.count(c1) == 0
        assert generator.calls == []
