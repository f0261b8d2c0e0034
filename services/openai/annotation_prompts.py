"""Prompt builders for image assessment."""

from typing import Any, Dict, Optional


def build_system_prompt() -> str:
    """Return the system prompt for the annotator."""
    return (
        "You are an image annotation assistant for a dataset labeling pipeline. "
        "You are careful and conservative: report low confidence rather than guessing, "
        "and reject images whose quality does not allow reliable annotation."
    )


def build_user_prompt(width: int, height: int, metadata: Optional[Dict[str, Any]] = None) -> str:
    """Return the user prompt describing the image being assessed."""
    context = ""
    if metadata:
        pairs = ", ".join(f"{key}={value}" for key, value in sorted(metadata.items()))
        context = f" Additional context: {pairs}."
    return (
        f"Detect and localize the objects in the following {width}x{height} image. "
        "Give an overall confidence score between 0 and 1 and say whether the image "
        f"quality is acceptable for annotation.{context}"
    )
