"""Persistent state: key-value store, conversations and link capture."""

from llm_grid.session.conversation_store import ConversationStore, conversation_urls
from llm_grid.session.kv_store import JsonFileStore, KeyValueStore, MemoryStore
from llm_grid.session.models import Conversation, Message, Settings

__all__ = [
    "Conversation",
    "ConversationStore",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Message",
    "Settings",
    "conversation_urls",
]
