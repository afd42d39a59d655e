"""
Content Module - Question and insight generation.

Components:
- provider: ContentProvider protocol and payload validation
- gemini_provider: Gemini REST implementation
- prompts: Prompt templates and response schemas
- extraction: Text extraction from tutor-supplied files
"""

from tutoria.content.extraction import extract_text
from tutoria.content.gemini_provider import GeminiContentProvider
from tutoria.content.provider import ContentProvider, performance_summary

__all__ = [
    "ContentProvider",
    "GeminiContentProvider",
    "extract_text",
    "performance_summary",
]
