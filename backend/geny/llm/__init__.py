"""LLM interaction module.

Contains the OpenAI-compatible client, the system prompt, and the two stages
that talk to or about the model:
- Query generation (chat completion or assistant run)
- Response parsing
"""

from .client import OpenAIClient
from .generator import AssistantRunGenerator, ChatCompletionGenerator, QueryGenerator, build_generator
from .parser import extract_json, parse
from .prompts import GENERATION_RULES, build_default_prompt

__all__ = [
    "OpenAIClient",
    "AssistantRunGenerator",
    "ChatCompletionGenerator",
    "QueryGenerator",
    "build_generator",
    "extract_json",
    "parse",
    "GENERATION_RULES",
    "build_default_prompt",
]
