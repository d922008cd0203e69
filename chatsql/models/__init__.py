from chatsql.models.db_connection import DBConnection
from chatsql.models.chat_message import ChatMessage
from chatsql.models.qa_example import QAExample
