from typing import Any, Dict, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chatsql.core.exceptions import ValidationError

SchemaType = TypeVar("SchemaType", bound=BaseModel)


def format_validation_errors(exc: PydanticValidationError) -> str:
    """将 pydantic 校验错误压缩为一行可读信息"""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        msg = err.get("msg", "")
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)


def coerce_schema(
    schema_cls: Type[SchemaType], obj_in: Union[SchemaType, Dict[str, Any]]
) -> SchemaType:
    """
    将 dict 或已构造的模型统一为 schema_cls 实例

    pydantic 校验失败转换为 ValidationError，保证校验发生在持久化之前
    """
    if isinstance(obj_in, schema_cls):
        return obj_in
    if isinstance(obj_in, BaseModel):
        obj_in = obj_in.model_dump(exclude_unset=True)
    try:
        return schema_cls.model_validate(obj_in)
    except PydanticValidationError as e:
        raise ValidationError(
            f"{schema_cls.__name__} 校验失败: {format_validation_errors(e)}"
        ) from e
