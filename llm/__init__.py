"""
LLM integration for the gold journal.

Builds analysis prompts and calls the Gemini text-generation API.
"""

from .analyst import (
    AnalysisError,
    AnalysisResult,
    AnalysisServiceError,
    AnalysisType,
    GeminiClient,
    GenerationConfig,
    MissingApiKeyError,
    TradeAnalyst,
    build_analysis_prompt,
    client_from_config,
)

__all__ = [
    "AnalysisError",
    "AnalysisResult",
    "AnalysisServiceError",
    "AnalysisType",
    "GeminiClient",
    "GenerationConfig",
    "MissingApiKeyError",
    "TradeAnalyst",
    "build_analysis_prompt",
    "client_from_config",
]
