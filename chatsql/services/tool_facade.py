"""
工具门面 (Tool Facade)

对外暴露的工具操作集合，组合连接注册表、对话记忆、问答示例和召回引擎：

- list_connections: 列出连接（不含凭据）
- get_schema / get_table_structure: 获取数据库结构
- generate_sql: 根据问题生成 SQL，可选执行，并记录对话
- execute_sql: 直接执行 SQL（行数受上限约束）
- get_chat_history: 最近的聊天记录，最新的在前
- get_status: 连接数、聊天记录数、示例数
- submit_correction: 用户修正错误 SQL，生成修正示例

说明:
    每个操作都先经过 SessionContextResolver，之后所有读写都限定在解析出的连接内。
    所有操作都返回 ToolResponse，异常不会越过门面边界。
"""
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from chatsql.core.config import settings
from chatsql.core.exceptions import (
    ChatSqlError, ExecutionError, GenerationError, NotFoundError, ValidationError
)
from chatsql.core.message_history import to_langchain_messages
from chatsql.schemas.db_connection import DBConnectionSummary
from chatsql.schemas.tool_response import ToolResponse
from chatsql.services.collaborators import SchemaProvider, SqlExecutor, SqlGenerator
from chatsql.services.connection_registry import ConnectionRegistry
from chatsql.services.example_retrieval import ExampleRetrievalEngine
from chatsql.services.example_store import ExampleStore
from chatsql.services.memory_store import ConversationMemoryStore
from chatsql.services.session_context import SessionContextResolver
from chatsql.services.sql_generator import clean_sql_result

logger = logging.getLogger(__name__)


def tool_operation(func: Callable[..., ToolResponse]) -> Callable[..., ToolResponse]:
    """把操作内抛出的异常转换为结构化的错误响应"""

    @wraps(func)
    def wrapper(*args, **kwargs) -> ToolResponse:
        try:
            return func(*args, **kwargs)
        except ChatSqlError as e:
            logger.warning(f"{func.__name__} 失败 ({e.error_type}): {e.message}")
            return ToolResponse.failure(e.message, e.error_type, operation=func.__name__)
        except Exception as e:
            logger.error(f"{func.__name__} 出现未预期的错误: {e}", exc_info=True)
            return ToolResponse.failure(f"处理请求时出错：{e}", "internal_error", operation=func.__name__)

    return wrapper


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} 不能为空")
    return str(value).strip()


def _reply_time(question_time: datetime) -> datetime:
    """助手回复的时间戳严格晚于对应的用户消息"""
    return max(datetime.now(), question_time + timedelta(microseconds=1))


class ToolFacade:

    def __init__(
        self,
        registry: ConnectionRegistry,
        memory_store: ConversationMemoryStore,
        example_store: ExampleStore,
        retrieval: ExampleRetrievalEngine,
        resolver: SessionContextResolver,
        schema_provider: SchemaProvider,
        generator: SqlGenerator,
        executor: SqlExecutor,
        max_execute_rows: int = 100,
        default_history_limit: int = 20,
        max_message_history: int = 10
    ):
        self.registry = registry
        self.memory_store = memory_store
        self.example_store = example_store
        self.retrieval = retrieval
        self.resolver = resolver
        self.schema_provider = schema_provider
        self.generator = generator
        self.executor = executor
        self.max_execute_rows = max_execute_rows
        self.default_history_limit = default_history_limit
        self.max_message_history = max_message_history

    def _resolve(self, connection_id: Optional[str], params: Optional[Mapping[str, str]]) -> str:
        return self.resolver.resolve(connection_id, params).id

    def _try_resolve(
        self, connection_id: Optional[str], params: Optional[Mapping[str, str]]
    ) -> Optional[str]:
        try:
            return self._resolve(connection_id, params)
        except (NotFoundError, ValidationError) as e:
            logger.debug(f"未能解析连接，继续处理: {e.message}")
            return None

    def _effective_limit(self, max_rows: Optional[int]) -> int:
        if max_rows is None or max_rows <= 0:
            return self.max_execute_rows
        return min(max_rows, self.max_execute_rows)

    def _run_sql(self, cid: str, sql: str, limit: int):
        """执行 SQL，返回 (rows, error)；执行失败不抛出"""
        try:
            rows = self.executor.execute(cid, sql, limit) or []
        except ExecutionError as e:
            logger.warning(f"SQL 执行失败 (connection_id={cid}): {e.message}")
            return [], e.message
        return list(rows)[:limit], None

    # ==================== 连接与结构 ====================

    @tool_operation
    def list_connections(
        self, connection_id: Optional[str] = None, params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        resolved = self._try_resolve(connection_id, params)
        summaries = [
            DBConnectionSummary.model_validate(c).model_dump() for c in self.registry.list()
        ]
        return ToolResponse.success(summaries, connection_id=resolved, total=len(summaries))

    @tool_operation
    def get_schema(
        self, connection_id: Optional[str] = None, params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        cid = self._resolve(connection_id, params)
        return ToolResponse.success(self.schema_provider.schema(cid), connection_id=cid)

    @tool_operation
    def get_table_structure(
        self,
        table_name: str,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        cid = self._resolve(connection_id, params)
        wanted = _require_text(table_name, "table_name").lower()

        schema = self.schema_provider.schema(cid) or {}
        for table in schema.get("tables", []):
            name = table.get("table_name") or table.get("name") or ""
            if name.lower() == wanted:
                return ToolResponse.success(table, connection_id=cid)
        raise NotFoundError(f"未找到表: {table_name}")

    # ==================== SQL 生成与执行 ====================

    @tool_operation
    def generate_sql(
        self,
        question: str,
        execute: bool = False,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        """
        根据问题生成 SQL

        流程:
            1. 取最近的对话作为上下文，召回问答示例，获取数据库结构
            2. 追加用户消息，调用生成器
            3. 可选执行（行数受 max_execute_rows 约束）
            4. 追加助手消息（SQL、结果、错误），记录所用示例的使用次数

        生成或执行失败会记录在助手消息上，并以 data.error 返回；
        获取结构或召回失败时不写入任何消息
        """
        cid = self._resolve(connection_id, params)
        question = _require_text(question, "question")

        recent = self.memory_store.recent(cid, self.max_message_history)
        history = to_langchain_messages(list(reversed(recent)))
        examples = self.retrieval.retrieve(cid, question)
        schema = self.schema_provider.schema(cid)

        user_turn = self.memory_store.append({
            "connection_id": cid, "message": question, "is_user": True,
        })

        try:
            sql = clean_sql_result(self.generator.generate(question, schema, examples, history))
            if not sql:
                raise GenerationError("模型未返回任何 SQL")
        except GenerationError as e:
            assistant_turn = self.memory_store.append({
                "connection_id": cid,
                "message": f"处理您的请求时出现错误：{e.message}",
                "execution_error": e.message,
                "created_time": _reply_time(user_turn.created_time),
            })
            return ToolResponse.success(
                {
                    "sql": None,
                    "rows": [],
                    "row_count": 0,
                    "error": e.message,
                    "executed": False,
                    "example_ids": [ex.id for ex in examples],
                    "turn_id": assistant_turn.id,
                },
                connection_id=cid,
                user_turn_id=user_turn.id,
            )

        rows: List[Dict[str, Any]] = []
        error = None
        if execute:
            rows, error = self._run_sql(cid, sql, self.max_execute_rows)
            if error:
                message = f"我生成了以下SQL查询，但执行时出现错误：\n\n{sql}\n\n错误信息：{error}"
            else:
                message = f"根据您的问题，我生成并执行了以下SQL查询：\n\n{sql}\n\n查询结果包含 {len(rows)} 条记录。"
        else:
            message = f"根据您的问题，我生成了以下SQL查询：\n\n{sql}"

        assistant_turn = self.memory_store.append({
            "connection_id": cid,
            "message": message,
            "sql_query": sql,
            "execution_error": error,
            "query_result": rows or None,
            "created_time": _reply_time(user_turn.created_time),
        })

        for example in examples:
            try:
                self.example_store.record_usage(example.id, connection_id=cid)
            except NotFoundError:
                logger.warning(f"问答示例 {example.id} 在生成过程中被删除，跳过使用统计")

        return ToolResponse.success(
            {
                "sql": sql,
                "rows": rows,
                "row_count": len(rows),
                "error": error,
                "executed": execute,
                "example_ids": [ex.id for ex in examples],
                "turn_id": assistant_turn.id,
            },
            connection_id=cid,
            user_turn_id=user_turn.id,
        )

    @tool_operation
    def execute_sql(
        self,
        sql: str,
        max_rows: Optional[int] = 100,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        """直接执行 SQL，返回的行数不超过 min(max_rows, max_execute_rows)"""
        cid = self._resolve(connection_id, params)
        sql = _require_text(sql, "sql")
        limit = self._effective_limit(max_rows)

        rows, error = self._run_sql(cid, sql, limit)
        return ToolResponse.success(
            {"rows": rows, "row_count": len(rows), "error": error},
            connection_id=cid,
            max_rows=limit,
        )

    # ==================== 历史与状态 ====================

    @tool_operation
    def get_chat_history(
        self,
        limit: Optional[int] = None,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        cid = self._resolve(connection_id, params)
        if limit is None:
            limit = self.default_history_limit

        turns = self.memory_store.recent(cid, limit)
        data = [t.model_dump(mode="json", exclude={"query_result_json"}) for t in turns]
        return ToolResponse.success(data, connection_id=cid, limit=limit)

    @tool_operation
    def get_status(
        self, connection_id: Optional[str] = None, params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        """
        统计信息

        连接总数总是返回；聊天记录和示例数量只统计解析出的连接
        """
        cid = self._try_resolve(connection_id, params)
        status: Dict[str, Any] = {"connections": self.registry.count()}
        if cid is not None:
            status["chat_turns"] = self.memory_store.count(cid)
            status["examples"] = self.example_store.count(cid)
            status["enabled_examples"] = self.example_store.count(cid, enabled_only=True)
        return ToolResponse.success(status, connection_id=cid)

    # ==================== 修正反馈 ====================

    @tool_operation
    def submit_correction(
        self,
        question: str,
        correct_sql: str,
        incorrect_sql: str,
        description: Optional[str] = None,
        connection_id: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None
    ) -> ToolResponse:
        cid = self._resolve(connection_id, params)
        example = self.example_store.create_from_correction(
            cid,
            question=question,
            correct_sql=correct_sql,
            incorrect_sql=incorrect_sql,
            description=description,
        )
        return ToolResponse.success(example.model_dump(mode="json"), connection_id=cid)


def build_tool_facade(
    schema_provider: SchemaProvider,
    generator: SqlGenerator,
    executor: SqlExecutor,
    session_factory=None
) -> ToolFacade:
    """按配置组装工具门面"""
    registry = ConnectionRegistry(session_factory)
    example_store = ExampleStore(session_factory)
    return ToolFacade(
        registry=registry,
        memory_store=ConversationMemoryStore(session_factory),
        example_store=example_store,
        retrieval=ExampleRetrievalEngine(
            example_store, top_k=settings.EXAMPLE_TOP_K, min_score=settings.EXAMPLE_MIN_SCORE
        ),
        resolver=SessionContextResolver(registry, settings.DEFAULT_CONNECTION_ID),
        schema_provider=schema_provider,
        generator=generator,
        executor=executor,
        max_execute_rows=settings.MAX_EXECUTE_ROWS,
        default_history_limit=settings.DEFAULT_HISTORY_LIMIT,
        max_message_history=settings.MAX_MESSAGE_HISTORY,
    )
