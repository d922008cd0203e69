"""
问答示例模型

经过验证的 问题 -> SQL 对，用于 SQL 生成时的 Few-shot 召回。

设计原则：
1. 每个数据库连接独立维护示例
2. 来源分为手动创建（manual）和用户修正（correction）
3. 修正来源的示例必须记录原始错误 SQL
4. 使用次数只增不减，用于召回排序
"""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from chatsql.db.base_class import Base


class QAExample(Base):
    __tablename__ = "qa_examples"

    id = Column(String(64), primary_key=True)
    connection_id = Column(String(100), nullable=False, index=True)

    question = Column(Text, nullable=False, comment="用户问题")
    sql_query = Column(Text, nullable=False, comment="对应的SQL查询")
    description = Column(Text, nullable=True, comment="示例说明")
    category = Column(String(100), nullable=True, comment="示例分类")
    is_enabled = Column(Boolean, nullable=False, default=True, comment="是否启用")

    # 来源
    source = Column(String(20), nullable=False, default="manual",
                    comment="manual: 手动创建, correction: 修正生成")
    original_incorrect_sql = Column(Text, nullable=True,
                                    comment="修正生成时记录的原始错误SQL")

    # 统计
    usage_count = Column(Integer, nullable=False, default=0, comment="被召回使用的次数")
    last_used_time = Column(DateTime, nullable=True)

    created_time = Column(DateTime, nullable=False)
    update_time = Column(DateTime, nullable=True)
    created_by = Column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_qa_examples_connection_enabled", "connection_id", "is_enabled"),
    )

    def __repr__(self):
        return f"<QAExample(id='{self.id}', connection_id='{self.connection_id}', source='{self.source}')>"
