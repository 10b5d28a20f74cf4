"""AI explanation provider adapters."""

from .prompts import build_prompt
from .runner import ExplanationRequest, ExplanationRunner

__all__ = ["ExplanationRequest", "ExplanationRunner", "build_prompt"]
