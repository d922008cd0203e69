"""
基于 LangChain 聊天模型的 SQL 生成器

把任意 langchain-core 聊天模型（BaseChatModel）适配为 SqlGenerator：
系统提示词携带数据库结构和 Few-shot 示例，随后是修剪过的对话历史，最后是当前问题。
"""
from typing import Any, Dict, List, Optional, Sequence
import json
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from chatsql.core.exceptions import GenerationError
from chatsql.core.message_history import trim_message_history
from chatsql.schemas.qa_example import QAExample
from chatsql.services.collaborators import SqlGenerator
from chatsql.services.example_retrieval import format_examples_for_prompt

logger = logging.getLogger(__name__)


def clean_sql_result(sql: Optional[str]) -> str:
    """
    清理 LLM 返回的 SQL

    去除 markdown 代码块标记和空行，None 返回空字符串
    """
    if not sql:
        return ""
    lines = []
    for line in sql.strip().splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            continue
        if not stripped:
            continue
        lines.append(line.rstrip())
    return "\n".join(lines).strip()


def _format_schema(schema: Dict[str, Any]) -> str:
    if not schema:
        return "（未提供数据库结构）"
    return json.dumps(schema, ensure_ascii=False, indent=2, default=str)


class ChatModelSqlGenerator(SqlGenerator):

    def __init__(
        self,
        llm: BaseChatModel,
        dialect: Optional[str] = None,
        max_history: Optional[int] = None
    ):
        self.llm = llm
        self.dialect = dialect
        self.max_history = max_history

    def _create_system_prompt(
        self, schema: Dict[str, Any], examples: Sequence[QAExample]
    ) -> str:
        parts = [
            "你是一个专业的 SQL 生成助手，根据用户问题和数据库结构生成 SQL 查询。",
        ]
        if self.dialect:
            parts.append(f"数据库类型: {self.dialect}")
        parts.append(f"可用的表和字段信息:\n{_format_schema(schema)}")

        few_shot = format_examples_for_prompt(examples)
        if few_shot:
            parts.append(few_shot)

        parts.append(
            "要求：\n"
            "1. 只返回SQL语句，不要其他解释\n"
            "2. 只使用上面列出的表和字段\n"
            "3. 结合之前的对话理解追问中省略的条件"
        )
        return "\n\n".join(parts)

    def build_messages(
        self,
        question: str,
        schema: Dict[str, Any],
        examples: Sequence[QAExample],
        history: Sequence[BaseMessage]
    ) -> List[BaseMessage]:
        messages: List[BaseMessage] = [SystemMessage(content=self._create_system_prompt(schema, examples))]
        if history:
            messages.extend(
                trim_message_history(list(history), max_messages=self.max_history, preserve_system=False)
            )
        messages.append(HumanMessage(content=question))
        return messages

    def generate(
        self,
        question: str,
        schema: Dict[str, Any],
        examples: Sequence[QAExample],
        history: Sequence[BaseMessage]
    ) -> str:
        messages = self.build_messages(question, schema, examples, history)
        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            logger.error(f"LLM 调用失败: {e}")
            raise GenerationError("SQL 生成失败", description=str(e)) from e

        content = response.content if isinstance(response.content, str) else str(response.content)
        sql = clean_sql_result(content)
        if not sql:
            raise GenerationError("模型未返回任何 SQL")
        logger.info(f"Generated SQL with {len(examples)} examples and {len(history)} history messages")
        return sql
