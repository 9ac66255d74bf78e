#!/usr/bin/env python3
"""
Prompt templates for chat models.
"""
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder, PromptTemplate

# Chat layout shared by every completion: system prompt, prior turns, current user turn.
CHAT_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    MessagesPlaceholder("history", optional=True),
    ("human", "{user_prompt}"),
])

# Hypothetical answer (HyDE)
HYPO_SYSTEM_PROMPT = "You're an assistant bot with expertise in all domains of human knowledge."

HYPO_USER_PROMPT = PromptTemplate.from_template(
    "You're preparing to answer questions about a specific source material, before ingesting the source "
    "material, you need to answer the question based on the knowledge you're trained on, here it is: "
    "`{question}`, please provide a concise answer in one paragraph, stay truthful and factual."
)

# Final answer
ON_TOPIC_USER_PROMPT = PromptTemplate.from_template(
    "Given the context: `{rag_content}`. Here is the question you're to reply now: `{text}`. "
    "Please provide a concise answer, stay truthful and factual."
)

# Used when the context was folded into the system prompt instead of the user turn.
GROUNDED_USER_PROMPT = PromptTemplate.from_template(
    "Here is the question you're to reply now: `{text}`. Please provide a concise answer, stay truthful and factual."
)

OFF_TOPIC_USER_PROMPT = PromptTemplate.from_template(
    "Here is the question you're to reply now: `{text}`. Please provide a concise answer."
)

OFF_TOPIC_SYSTEM_PROMPT = "You're a question and answer bot."

# Distilled history
HISTORY_PAIR_TEMPLATE = PromptTemplate.from_template("User asked: `{question}`\n You answered: `{answer}`\n")

# Chain-of-chat history filter, step 1 then step 2 in the same conversation.
HISTORY_FILTER_SYSTEM_PROMPT = "You're a meticulous assistant that judges how questions in a conversation relate to each other."

HISTORY_FILTER_STEP_1 = PromptTemplate.from_template(
    "Here are the most recent questions a user asked, oldest first:\n{numbered_questions}\n"
    "For each earlier question, decide whether it is relevant or irrelevant to the last question. "
    "Only call a question relevant if you are at least 80% confident."
)

HISTORY_FILTER_STEP_2 = PromptTemplate.from_template(
    "Now reply with a JSON object only, keyed question_1, question_2, ... and question_last. "
    "Include only the earlier questions you judged relevant, then always include the last question "
    "under question_last. Example: {{\"question_1\": \"...\", \"question_last\": \"...\"}}"
)
