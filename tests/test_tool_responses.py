"""
单元测试：ToolResponse 序列化、响应模型与配置项
"""
import json
from datetime import datetime

import pytest

from chatsql import models
from chatsql.core.config import Settings
from chatsql.core.exceptions import ConnectionInUseError, NotFoundError, PersistenceError
from chatsql.schemas.db_connection import DBConnection, DBConnectionSummary
from chatsql.schemas.qa_example import ExampleSource, QAExample
from chatsql.schemas.tool_response import ToolResponse


class TestToolResponse:

    def test_success_response_serialization(self):
        """测试成功响应的序列化"""
        response = ToolResponse.success({"rows": [{"id": 1}]}, connection_id="c1")
        parsed = json.loads(str(response))

        assert parsed["status"] == "success"
        assert parsed["data"]["rows"] == [{"id": 1}]
        assert parsed["metadata"]["connection_id"] == "c1"
        assert parsed["error"] is None
        assert response.ok

    def test_error_response_serialization(self):
        """测试错误响应的序列化"""
        response = ToolResponse.failure("未找到数据库连接: c9", "not_found")
        parsed = json.loads(response.model_dump_json())

        assert parsed["status"] == "error"
        assert parsed["error_type"] == "not_found"
        assert parsed["data"] is None
        assert parsed["metadata"] is None
        assert not response.ok

    def test_invalid_status(self):
        with pytest.raises(ValueError):
            ToolResponse(status="partial")


class TestReadSchemas:

    def test_connection_from_orm_object(self):
        """响应模型可直接从 ORM 对象构造，且不暴露密码"""
        obj = models.DBConnection(
            id="c1", name="Sales", db_type="sqlite", database="sales.db",
            password="secret", created_time=datetime(2024, 1, 1),
        )
        connection = DBConnection.model_validate(obj)
        assert connection.id == "c1"
        assert "password" not in connection.model_dump()
        assert DBConnectionSummary.model_validate(obj).database == "sales.db"

    def test_example_from_orm_object(self):
        obj = models.QAExample(
            id="e1", connection_id="c1", question="列出订单", sql_query="SELECT * FROM orders",
            is_enabled=True, source="manual", usage_count=2, created_time=datetime(2024, 1, 1),
        )
        example = QAExample.model_validate(obj)
        assert example.source == ExampleSource.MANUAL
        assert example.usage_count == 2


class TestErrorTypes:

    def test_error_types(self):
        assert NotFoundError("x").error_type == "not_found"
        assert PersistenceError("x").error_type == "persistence_failure"
        assert ConnectionInUseError("x").error_type == "validation_error"

    def test_description_kept(self):
        error = PersistenceError("存储操作失败", description="disk I/O error")
        assert error.message == "存储操作失败"
        assert error.description == "disk I/O error"


class TestSettings:

    def test_blank_default_connection(self):
        assert Settings(DEFAULT_CONNECTION_ID="  ").DEFAULT_CONNECTION_ID is None

    def test_positive_limits(self):
        with pytest.raises(ValueError):
            Settings(MAX_EXECUTE_ROWS=0)

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.API_PREFIX == "/api"
        assert settings.EXAMPLE_TOP_K >= 1
