#!/usr/bin/env python3
"""
Hypothetical answer generation (HyDE).

The answer comes from model priors only and is used as a second retrieval
query. An empty string means the secondary retrieval is skipped.
"""
from rag_webhook.config.settings import HYPO_LLM_ENDPOINT, HYPO_LLM_MODEL, HYPO_TOKEN_LIMIT, OPENAI_API_KEY
from rag_webhook.models.data_models import ChatOptions
from rag_webhook.prompts.chat_prompts import HYPO_SYSTEM_PROMPT, HYPO_USER_PROMPT
from rag_webhook.services.errors import CompletionFailed
from rag_webhook.services.llm_service import LlmService, build_chat_model
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.text_utils import preview

log = setup_logging("hypothetical_answer.log")

HYPO_CHAT_ID = "create-hypo-answer"


class HypotheticalAnswerer:
    def __init__(self, llm: LlmService = None, token_limit: int = HYPO_TOKEN_LIMIT):
        self.llm = llm or LlmService(chat_model=build_chat_model(HYPO_LLM_ENDPOINT, OPENAI_API_KEY, HYPO_LLM_MODEL))
        self.token_limit = token_limit

    def answer(self, question: str) -> str:
        options = ChatOptions(
            system_prompt=HYPO_SYSTEM_PROMPT,
            restart=True,
            token_limit=self.token_limit,
        )
        try:
            result = self.llm.chat_completion(HYPO_CHAT_ID, HYPO_USER_PROMPT.format(question=question), options)
        except CompletionFailed as e:
            log.warning(f"⚠️ Hypothetical answer failed, skipping secondary retrieval: {e}")
            return ""
        log.info(f"Hypothetical answer: {preview(result.choice, 256)}")
        return result.choice
