#!/usr/bin/env python3
"""
Error kinds raised by the service adapters.

The turn controller decides which of these are fatal for a turn; the
adapters only translate client-library failures into them.
"""


class RagWebhookError(Exception):
    """Base class for recoverable pipeline failures."""


class EmbedUnavailable(RagWebhookError):
    """The embedding service returned no vectors or failed after retries."""


class SearchFailed(RagWebhookError):
    """A k-NN search against a vector collection failed."""


class CompletionFailed(RagWebhookError):
    """The LLM chat completion call failed or returned nothing."""


class ParseFailed(RagWebhookError):
    """An LLM reply could not be parsed into the expected structure."""


class StoreFailed(RagWebhookError):
    """A KV store or ephemeral collection operation failed."""
