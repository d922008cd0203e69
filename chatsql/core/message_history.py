"""
对话上下文构建

功能：
- 将持久化的聊天记录转换为 LangChain 消息
- 修剪消息历史，控制发送给 LLM 的上下文长度

使用场景：
- SQL 生成时携带同一连接下的最近几轮对话
"""
from typing import List, Optional, Sequence
import logging

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chatsql.core.config import settings
from chatsql.schemas.chat_message import ChatTurn

logger = logging.getLogger(__name__)


def to_langchain_messages(turns: Sequence[ChatTurn]) -> List[BaseMessage]:
    """
    将聊天记录（按时间升序）转换为 LangChain 消息

    说明:
        - 用户消息 -> HumanMessage
        - 助手消息 -> AIMessage，若带 SQL 则附在内容末尾，便于 LLM 参考上一轮的查询
        - 执行错误也一并附上，帮助 LLM 在追问中修正
    """
    messages: List[BaseMessage] = []
    for turn in turns:
        if turn.is_user:
            messages.append(HumanMessage(content=turn.message))
            continue

        content = turn.message
        if turn.sql_query and turn.sql_query not in content:
            content = f"{content}\n\nSQL: {turn.sql_query}"
        if turn.execution_error:
            content = f"{content}\n执行错误: {turn.execution_error}"
        messages.append(AIMessage(content=content))
    return messages


def trim_message_history(
    messages: List[BaseMessage],
    max_messages: Optional[int] = None,
    preserve_system: bool = True
) -> List[BaseMessage]:
    """
    修剪消息历史，保留最近的N条消息

    Args:
        messages: 消息列表
        max_messages: 最大保留消息数（默认从配置读取）
        preserve_system: 是否保留所有系统消息（默认True）

    Returns:
        修剪后的消息列表，保持原始顺序
    """
    if max_messages is None:
        max_messages = settings.MAX_MESSAGE_HISTORY

    if len(messages) <= max_messages:
        return messages

    logger.info(f"修剪消息历史: {len(messages)} -> {max_messages}")

    if not preserve_system:
        return messages[-max_messages:]

    system_count = sum(1 for m in messages if isinstance(m, SystemMessage))
    available_slots = max_messages - system_count
    if available_slots <= 0:
        logger.warning(
            f"系统消息数量({system_count})超过限制({max_messages})，只保留系统消息"
        )
        return [m for m in messages if isinstance(m, SystemMessage)][:max_messages]

    # 从后往前保留非系统消息，系统消息全部保留
    keep = set()
    remaining = available_slots
    for idx in range(len(messages) - 1, -1, -1):
        if isinstance(messages[idx], SystemMessage):
            keep.add(idx)
        elif remaining > 0:
            keep.add(idx)
            remaining -= 1

    return [m for idx, m in enumerate(messages) if idx in keep]
