"""
外部协作方接口

Schema 获取、SQL 生成、SQL 执行都不在本项目内实现，
工具门面只通过这里定义的接口调用它们，部署时注入具体实现。
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from langchain_core.messages import BaseMessage

from chatsql.schemas.qa_example import QAExample


class SchemaProvider(ABC):
    @abstractmethod
    def schema(self, connection_id: str) -> Dict[str, Any]:
        """
        返回连接的数据库结构描述

        约定格式: {"tables": [{"table_name": ..., "columns": [...]}, ...]}，
        表名字段也可以是 "name"。
        """


class SqlGenerator(ABC):
    @abstractmethod
    def generate(
        self,
        question: str,
        schema: Dict[str, Any],
        examples: Sequence[QAExample],
        history: Sequence[BaseMessage]
    ) -> str:
        """
        根据问题生成 SQL

        Args:
            question: 用户问题
            schema: SchemaProvider 返回的结构描述
            examples: 召回的问答示例，可能为空
            history: 同一连接下最近的对话（按时间升序）

        Raises:
            GenerationError: 无法生成 SQL
        """


class SqlExecutor(ABC):
    @abstractmethod
    def execute(self, connection_id: str, sql: str, max_rows: int) -> List[Dict[str, Any]]:
        """
        执行 SQL，返回不超过 max_rows 行的结果

        Raises:
            ExecutionError: 执行失败
        """
