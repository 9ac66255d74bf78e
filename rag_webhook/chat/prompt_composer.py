#!/usr/bin/env python3
"""
Composition of the final system and user prompts for a turn.
"""
from typing import List

from rag_webhook.config.settings import CONTEXT_CHAR_CAP, CONTEXT_PLACEMENT
from rag_webhook.models.content import WorkingPrompt
from rag_webhook.models.data_models import ComposedPrompt
from rag_webhook.prompts.chat_prompts import GROUNDED_USER_PROMPT, OFF_TOPIC_SYSTEM_PROMPT, OFF_TOPIC_USER_PROMPT, ON_TOPIC_USER_PROMPT

PLACEMENTS = ("user_prompt", "system_prompt")


class PromptComposer:
    """
    Merges the working system prompt, the distilled history and the
    retrieved passages.

    With placement "user_prompt" the passages are quoted in the user turn.
    With placement "system_prompt" they are appended to the system prompt
    while it is no longer than char_cap and the passage is not already a
    substring of it; a prompt left identical to the configured one means
    there is no relevant context for the turn.
    """

    def __init__(self, placement: str = CONTEXT_PLACEMENT, char_cap: int = CONTEXT_CHAR_CAP):
        if placement not in PLACEMENTS:
            raise ValueError(f"Unknown context placement: {placement}")
        self.placement = placement
        self.char_cap = char_cap

    def fold_passages(self, working: WorkingPrompt, passages: List[str]) -> List[str]:
        """Append passages to the working prompt under the soft cap. Returns the passages used."""
        used = []
        for passage in passages:
            if len(working.system_prompt) > self.char_cap:
                break
            if passage in working.system_prompt:
                continue
            working.update(f"\n{passage}")
            used.append(passage)
        return used

    def compose(self, working: WorkingPrompt, text: str, on_topic: bool, passages: List[str], history: str) -> ComposedPrompt:
        if not on_topic:
            working.mutate(OFF_TOPIC_SYSTEM_PROMPT + history)
            return ComposedPrompt(
                system_prompt=working.system_prompt,
                user_prompt=OFF_TOPIC_USER_PROMPT.format(text=text),
            )

        working.update(history)

        if self.placement == "system_prompt":
            used = self.fold_passages(working, passages)
            return ComposedPrompt(
                system_prompt=working.system_prompt,
                user_prompt=GROUNDED_USER_PROMPT.format(text=text),
                has_context=not working.is_unchanged,
                passages=used,
            )

        # An empty bundle still uses the context template, quoting nothing.
        rag_content = "\n".join(passages)
        return ComposedPrompt(
            system_prompt=working.system_prompt,
            user_prompt=ON_TOPIC_USER_PROMPT.format(rag_content=rag_content, text=text),
            passages=list(passages),
        )
