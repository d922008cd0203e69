"""
问答示例召回 (Example Retrieval Engine)

根据用户问题，从某连接启用的示例中挑选最有参考价值的 Top-K 个，
作为 SQL 生成的 Few-shot 上下文。

排序规则（依次比较）：
1. 词汇相关度：问题与示例问题的词集合 Jaccard 相似度，降序
2. usage_count 降序
3. last_used_time 降序（从未使用的排在最后）
4. created_time 升序（更早创建的优先）
5. id 升序（保证完全确定）

召回是当前快照上的纯函数，不会修改使用统计；
调用方真正使用了某些示例后，自行调用 ExampleStore.record_usage。
"""
from datetime import datetime
from typing import List, Optional, Sequence, Set
import logging
import re

from chatsql.schemas.qa_example import QAExample, ScoredExample
from chatsql.services.example_store import ExampleStore

logger = logging.getLogger(__name__)

# 中日韩表意文字逐字切分；其他文字（含重音拉丁、西里尔等）按 Unicode 单词整体切分
_TOKEN_PATTERN = re.compile(
    r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]|[^\W\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]+"
)


def tokenize(text: Optional[str]) -> Set[str]:
    if not text:
        return set()
    return set(_TOKEN_PATTERN.findall(text.lower()))


def relevance_score(question: str, example_question: str) -> float:
    """词集合的 Jaccard 相似度，任一侧为空时为 0"""
    a = tokenize(question)
    b = tokenize(example_question)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _sort_key(item: ScoredExample):
    example = item.example
    last_used = example.last_used_time.timestamp() if example.last_used_time else float("-inf")
    return (
        -item.score,
        -example.usage_count,
        -last_used,
        example.created_time or datetime.min,
        example.id,
    )


def rank_examples(
    question: str,
    examples: Sequence[QAExample],
    top_k: int,
    min_score: float = 0.0
) -> List[ScoredExample]:
    """
    对示例打分并排序

    Args:
        question: 用户问题
        examples: 候选示例（禁用的会被忽略）
        top_k: 返回数量
        min_score: 最低相关度，低于此值的示例被过滤

    Returns:
        按排序规则排列的前 top_k 个示例及其分数
    """
    if top_k <= 0:
        return []
    scored = [
        ScoredExample(example=e, score=relevance_score(question, e.question))
        for e in examples
        if e.is_enabled
    ]
    scored = [s for s in scored if s.score >= min_score]
    scored.sort(key=_sort_key)
    return scored[:top_k]


def format_examples_for_prompt(examples: Sequence[QAExample]) -> str:
    """
    格式化示例为 Few-shot 提示词

    没有示例时返回空字符串，调用方据此退化为无示例生成
    """
    if not examples:
        return ""

    lines = ["以下是一些相关的问答示例，请参考这些示例的模式和风格来生成SQL查询：", ""]
    for i, example in enumerate(examples, start=1):
        lines.append(f"示例 {i}:")
        lines.append(f"问题: {example.question}")
        lines.append(f"SQL: {example.sql_query}")
        if example.description:
            lines.append(f"说明: {example.description}")
        lines.append("")
    lines.append("请根据上述示例的风格和模式，为当前用户问题生成准确的SQL查询：")
    return "\n".join(lines)


class ExampleRetrievalEngine:

    def __init__(self, example_store: ExampleStore, top_k: int = 3, min_score: float = 0.0):
        self._example_store = example_store
        self.top_k = top_k
        self.min_score = min_score

    def retrieve_scored(
        self, connection_id: str, question: str, top_k: Optional[int] = None
    ) -> List[ScoredExample]:
        if not question or not question.strip():
            return []
        candidates = self._example_store.get_enabled(connection_id)
        if not candidates:
            return []

        k = self.top_k if top_k is None else top_k
        ranked = rank_examples(question, candidates, top_k=k, min_score=self.min_score)
        logger.info(
            f"Retrieved {len(ranked)}/{len(candidates)} examples for connection {connection_id}: "
            + ", ".join(f"{s.example.id}({s.score:.2f})" for s in ranked)
        )
        return ranked

    def retrieve(
        self, connection_id: str, question: str, top_k: Optional[int] = None
    ) -> List[QAExample]:
        """返回排序后的 Top-K 示例；该连接没有启用的示例时返回空列表"""
        return [s.example for s in self.retrieve_scored(connection_id, question, top_k)]
