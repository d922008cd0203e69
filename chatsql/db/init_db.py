import logging
from typing import Optional

from sqlalchemy.engine import Engine

from chatsql.db import base  # noqa: F401  确保所有模型已注册
from chatsql.db.base_class import Base
from chatsql.db.session import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(engine: Optional[Engine] = None) -> None:
    """创建连接配置、聊天记录、问答示例三张表（已存在则跳过）"""
    engine = engine or default_engine
    Base.metadata.create_all(bind=engine)
    logger.info(f"元数据表已就绪: {', '.join(sorted(Base.metadata.tables))}")
