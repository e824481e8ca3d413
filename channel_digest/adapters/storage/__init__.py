from channel_digest.adapters.storage.event_store import JsonEventStore, MemoryEventStore

__all__ = ["JsonEventStore", "MemoryEventStore"]
