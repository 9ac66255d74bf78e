#!/usr/bin/env python3
"""
Configuration settings for the RAG webhook.

- When running standalone, default values are used for all environment variables.
- When deployed, values from the service environment override the defaults.
- The content keys (system_prompt, post_prompt, error_mesg, ...) keep the
  lowercase names the webhook host exports.
"""
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _env_bool(name, default):
    return os.getenv(name, default).lower() == "true"


# LLM Service Configuration
LLM_ENDPOINT = os.getenv("llm_endpoint", "")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "mistralai/Mixtral-8x7B-Instruct-v0.1")
TOKEN_LIMIT = int(os.getenv("TOKEN_LIMIT", "2048"))

# Hypothetical answers and embeddings go to an OpenAI-compatible endpoint.
# An empty endpoint means the default OpenAI base URL.
HYPO_LLM_ENDPOINT = os.getenv("HYPO_LLM_ENDPOINT", "")
HYPO_LLM_MODEL = os.getenv("HYPO_LLM_MODEL", "gpt-4-turbo")
HYPO_TOKEN_LIMIT = int(os.getenv("HYPO_TOKEN_LIMIT", "128"))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Embedding Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002")
EMBEDDING_DIM = int(os.getenv("EMBEDDING_DIM", "1536"))
EMBEDDING_MAX_RETRIES = int(os.getenv("EMBEDDING_MAX_RETRIES", "3"))

# Content Settings
SYSTEM_PROMPT = os.getenv("system_prompt", "")
POST_PROMPT = os.getenv("post_prompt", "")
ERROR_MESG = os.getenv("error_mesg", "")
NO_ANSWER_MESG = os.getenv("no_answer_mesg", "No answer")
COLLECTION_NAME = os.getenv("collection_name", "")

# Relevance Configuration
DOMAIN_ANCHOR = os.getenv("DOMAIN_ANCHOR", "This source material is a technical book on Kubernetes.")
# Raw dot-product cutoff; the embeddings are not re-normalized before comparison.
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.75"))

# Retrieve the top k nearest points per query from the corpus collection.
RETRIEVER_TOP_K = int(os.getenv("RETRIEVER_TOP_K", "5"))

# Prompt Composition
# "user_prompt": context is quoted inside the user turn.
# "system_prompt": passages are folded into the system prompt under CONTEXT_CHAR_CAP.
CONTEXT_PLACEMENT = os.getenv("CONTEXT_PLACEMENT", "user_prompt")
CONTEXT_CHAR_CAP = int(os.getenv("CONTEXT_CHAR_CAP", "30000"))

# Chat History
CHAT_HISTORY_WINDOW = int(os.getenv("CHAT_HISTORY_WINDOW", "8"))
HISTORY_PAIRS = int(os.getenv("HISTORY_PAIRS", "2"))
CHAT_HISTORY_MAX = int(os.getenv("CHAT_HISTORY_MAX", "40"))
# "embedding": keep recent Q/A pairs the similarity oracle judges relevant.
# "llm": ask the LLM which earlier questions still matter (chain-of-chat).
HISTORY_STRATEGY = os.getenv("HISTORY_STRATEGY", "embedding")
HISTORY_CACHE_KEY = os.getenv("HISTORY_CACHE_KEY", "chat_history")
HISTORY_CACHE_TTL = int(os.getenv("HISTORY_CACHE_TTL", "120"))

# Ephemeral Q/A Collection
EPHEMERAL_ENABLED = _env_bool("EPHEMERAL_ENABLED", "true")
EPHEMERAL_COLLECTION = os.getenv("EPHEMERAL_COLLECTION", "ephemeral")
EPHEMERAL_RECALL_LIMIT = int(os.getenv("EPHEMERAL_RECALL_LIMIT", "3"))
QA_UPSERT_MAX_CHARS = int(os.getenv("QA_UPSERT_MAX_CHARS", "1500"))

# Redis Configuration
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))

# Qdrant Configuration
VECTOR_DB_HOST = os.getenv("VECTOR_DB_HOST", "localhost")
VECTOR_DB_PORT = int(os.getenv("VECTOR_DB_PORT", "6333"))

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Logging
LOG_DIR = os.getenv("LOG_DIR", os.path.join(PROJECT_ROOT, "..", "logs"))

# Metrics Configuration
METRICS_ENABLED = _env_bool("METRICS_ENABLED", "true")
METRICS_LOG_FILE = os.getenv("METRICS_LOG_FILE", "")
METRICS_LOG_TO_STDOUT = _env_bool("METRICS_LOG_TO_STDOUT", "true")
