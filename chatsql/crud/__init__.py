from chatsql.crud.crud_db_connection import db_connection
from chatsql.crud.crud_chat_message import chat_message
from chatsql.crud.crud_qa_example import qa_example
