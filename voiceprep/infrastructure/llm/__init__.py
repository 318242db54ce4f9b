"""LLM client used for answer scoring and question generation."""

from .client import VertexRestClient, extract_json

__all__ = ["VertexRestClient", "extract_json"]
