# Import and re-export schema classes
from chatsql.schemas.db_connection import (
    DBConnection,
    DBConnectionCreate,
    DBConnectionUpdate,
    DBConnectionSummary,
)
from chatsql.schemas.chat_message import ChatTurn, ChatTurnCreate
from chatsql.schemas.qa_example import (
    ExampleSource,
    QAExample,
    QAExampleCreate,
    QAExampleUpdate,
    ScoredExample,
)
from chatsql.schemas.tool_response import ToolResponse
