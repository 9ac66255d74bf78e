"""RAG webhook chat: answers conversation turns from a private vector corpus."""

__version__ = "1.0.0"
