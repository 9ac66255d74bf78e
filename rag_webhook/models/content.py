#!/usr/bin/env python3
"""
Content settings and the per-turn working system prompt.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ContentSettings:
    """Prompt templates and user-visible fallbacks, fixed for the life of the process."""
    initial_system_prompt: str
    system_prompt: str
    post_prompt: str
    error_message: str
    no_answer_message: str
    collection_name: str

    @classmethod
    def from_settings(cls) -> "ContentSettings":
        from rag_webhook.config import settings

        return cls(
            initial_system_prompt=settings.SYSTEM_PROMPT,
            system_prompt=settings.SYSTEM_PROMPT,
            post_prompt=settings.POST_PROMPT,
            error_message=settings.ERROR_MESG,
            no_answer_message=settings.NO_ANSWER_MESG,
            collection_name=settings.COLLECTION_NAME,
        )

    def working_prompt(self) -> "WorkingPrompt":
        return WorkingPrompt(self)


class WorkingPrompt:
    """
    Mutable copy of the system prompt scoped to a single turn.

    update() appends, mutate() replaces and reset() restores the initial
    prompt. The underlying ContentSettings is never touched.
    """

    def __init__(self, content: ContentSettings):
        self.content = content
        self.system_prompt = content.system_prompt

    def update(self, new_content: str) -> None:
        self.system_prompt = self.system_prompt + new_content

    def mutate(self, new_prompt: str) -> None:
        self.system_prompt = new_prompt

    def reset(self) -> None:
        self.system_prompt = self.content.initial_system_prompt

    @property
    def is_unchanged(self) -> bool:
        return self.system_prompt == self.content.system_prompt
