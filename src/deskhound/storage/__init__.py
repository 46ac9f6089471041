from deskhound.storage.repository import CategoryStats, MessageAnalytics, MessageRepository
from deskhound.storage.sink import MessageHandler, RecordSink

__all__ = ["CategoryStats", "MessageAnalytics", "MessageHandler", "MessageRepository", "RecordSink"]
