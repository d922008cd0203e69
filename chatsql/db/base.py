# Import all the models, so that Base has them before being
# used by init_db / metadata.create_all
from chatsql.db.base_class import Base  # noqa
from chatsql.models.db_connection import DBConnection  # noqa
from chatsql.models.chat_message import ChatMessage  # noqa
from chatsql.models.qa_example import QAExample  # noqa
