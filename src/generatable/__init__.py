"""
Generatable - Structured output from language models.

This package provides tools for:
- Describing pydantic models to a language model (guide, Generatable)
- Sending prompts to OpenAI-compatible completion endpoints
- Pulling JSON out of free-form or still-streaming model output
"""

__version__ = "0.1.0"
