"""
查询结果序列化

聊天记录中的查询结果以 JSON 文本持久化（query_result_json 列），
读取时重新解析为行列表。两个方向都是纯函数：

- 空结果或 None 序列化为 None（"无结果"），不会写入 "[]"
- 损坏的文本反序列化为空列表，并通过返回值告知调用方，由调用方记录告警
"""
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

Row = Dict[str, Any]


def serialize_rows(rows: Optional[Sequence[Row]]) -> Optional[str]:
    """
    将结果行序列化为 JSON 文本

    Args:
        rows: 结果行，每行是 列名 -> 值 的有序映射

    Returns:
        JSON 文本；rows 为空或 None 时返回 None
    """
    if not rows:
        return None
    # 列顺序与执行结果保持一致；无法直接序列化的值（日期、Decimal 等）按文本保存
    return json.dumps([dict(row) for row in rows], ensure_ascii=False, default=str)


def deserialize_rows(text: Optional[str]) -> Tuple[List[Row], bool]:
    """
    解析持久化的结果文本

    Returns:
        (rows, ok) - ok 为 False 表示文本已损坏，rows 此时为空列表
    """
    if text is None or not text.strip():
        return [], True
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return [], False
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        return [], False
    return data, True
