from contextlib import contextmanager
import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chatsql.core.config import settings
from chatsql.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    创建元数据存储引擎

    SQLite 需要关闭 check_same_thread，否则并发请求共享连接池时会报错
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = create_db_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """
    事务性数据库会话 Context Manager

    - 正常结束时提交
    - 任意异常时回滚，保证不会留下部分写入
    - SQLAlchemy 异常统一转换为 PersistenceError，不做内部重试

    Usage:
        with session_scope() as db:
            db.add(obj)
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"数据库操作失败，已回滚: {e}")
        raise PersistenceError("存储操作失败", description=str(e)) from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
