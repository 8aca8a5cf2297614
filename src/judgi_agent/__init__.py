"""JudgiAI agent package."""

from .config import ChatConfig, ResearchConfig, RetryConfig, SearchConfig, TranscriptionConfig
from .parsing.response_parser import ResponseTagParser, parse_response

__all__ = [
    "ChatConfig",
    "ResearchConfig",
    "RetryConfig",
    "SearchConfig",
    "TranscriptionConfig",
    "ResponseTagParser",
    "parse_response",
]
