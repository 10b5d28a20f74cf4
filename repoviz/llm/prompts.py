"""Prompt templates used when asking a provider to explain code."""

from __future__ import annotations

SYSTEM_PROMPT = (
    "You are a helpful code explainer. Provide clear, accurate, concise explanations."
)

FILE_TEMPLATE = (
    "Provide a high-level summary of the following code file. What is its primary "
    "purpose and responsibility? Explain it to a new developer on the team:\n\n```\n{code}\n```"
)

SELECTION_TEMPLATE = (
    "Explain the following line(s) of code. Be concise and clear:\n\n```\n{code}\n```"
)

MODES = ("file", "selection")


def build_prompt(code: str, mode: str = "file") -> str:
    """Render the explanation prompt for a whole file or a selected snippet."""
    if mode == "selection":
        return SELECTION_TEMPLATE.format(code=code)
    return FILE_TEMPLATE.format(code=code)


__all__ = ["MODES", "SYSTEM_PROMPT", "build_prompt"]
