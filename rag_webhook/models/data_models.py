#!/usr/bin/env python3
"""
Data models for the RAG webhook pipeline.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class RetrievedPoint:
    """A scored hit from a vector collection."""
    id: int
    score: float
    text: str


@dataclass
class ChatMessage:
    """One message of a conversation as stored by the chat service."""
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatOptions:
    """Per-call options for a chat completion."""
    system_prompt: str = ""
    post_prompt: str = ""
    restart: bool = False
    token_limit: int = 2048
    model: Optional[str] = None


@dataclass
class ChatResult:
    """Represents a chat completion result."""
    choice: str


@dataclass
class TurnReply:
    """The single HTTP response emitted for a turn."""
    body: str = ""
    status: int = 200
    content_type: str = "text/html"


@dataclass
class ComposedPrompt:
    """System and user prompts ready for the completion call."""
    system_prompt: str
    user_prompt: str
    has_context: bool = True
    passages: List[str] = field(default_factory=list)
