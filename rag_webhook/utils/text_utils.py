#!/usr/bin/env python3
"""
Text processing utility functions.
"""
import json
import re
from typing import List, Optional

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_QUESTION_ENTRY = re.compile(r'"question_\d+":\s*"([^"]*)"')
_QUESTION_KEY = re.compile(r"^question_(\d+|last)$")

CONVERSATION_ID_MAX_CHARS = 48


class TextUtils:
    """Text processing utility functions as static methods."""

    @staticmethod
    def alpha_numeric(text: str) -> str:
        """Replace every character outside [a-zA-Z0-9] with '-'."""
        return _NON_ALPHANUMERIC.sub("-", text)

    @staticmethod
    def first_x_chars(text: str, x: int) -> str:
        """First x code points of text (slicing a str never splits a code point)."""
        return text[:x]

    @staticmethod
    def conversation_id(header_value: Optional[str]) -> str:
        """Normalize an x-conversation-name header into a conversation identifier."""
        if not header_value:
            return ""
        return TextUtils.first_x_chars(TextUtils.alpha_numeric(header_value), CONVERSATION_ID_MAX_CHARS)

    @staticmethod
    def preview(text: str, size: int = 100) -> str:
        """Single-line preview used in log messages."""
        return TextUtils.first_x_chars(text, size).replace("\n", " ")

    @staticmethod
    def is_control_message(text: str, command: str = "/new") -> bool:
        return text.strip().lower() == command

    @staticmethod
    def strip_code_fence(reply: str) -> str:
        """Return the body of the first fenced code block, or the reply unchanged."""
        match = _FENCED_BLOCK.search(reply)
        return match.group(1).strip() if match else reply.strip()

    @staticmethod
    def parse_question_list(reply: str) -> List[str]:
        """
        Extract the question list from an LLM reply shaped like
        {"question_1": "...", "question_2": "...", "question_last": "..."}.

        Tolerates a surrounding ```json fence. When the JSON does not parse,
        falls back to a regex over "question_N" entries; "question_last" is
        always kept at the end when present. Returns [] when nothing matches.
        """
        body = TextUtils.strip_code_fence(reply)
        try:
            parsed = json.loads(body)
        except ValueError:
            parsed = None

        if isinstance(parsed, dict):
            numbered = []
            last = None
            for key, value in parsed.items():
                match = _QUESTION_KEY.match(str(key))
                if not match or not isinstance(value, str):
                    continue
                if match.group(1) == "last":
                    last = value
                else:
                    numbered.append((int(match.group(1)), value))
            questions = [value for _, value in sorted(numbered)]
            if last is not None:
                questions.append(last)
            return questions

        questions = _QUESTION_ENTRY.findall(body)
        last = re.search(r'"question_last":\s*"([^"]*)"', body)
        if last:
            questions.append(last.group(1))
        return questions


# Expose static methods as module-level functions after class definition
alpha_numeric = TextUtils.alpha_numeric
first_x_chars = TextUtils.first_x_chars
conversation_id = TextUtils.conversation_id
preview = TextUtils.preview
is_control_message = TextUtils.is_control_message
parse_question_list = TextUtils.parse_question_list
