from chat_gateway.sessions.base import SessionStoreBase
from chat_gateway.sessions.factory import close_session_store, create_session_store, get_session_store
from chat_gateway.sessions.memory import InMemorySessionStore

__all__ = [
    "InMemorySessionStore",
    "SessionStoreBase",
    "close_session_store",
    "create_session_store",
    "get_session_store",
]
