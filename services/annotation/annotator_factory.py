"""
Factory for creating the configured annotator.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from services.annotation.base_annotator import BaseAnnotator
from services.annotation.simulated_annotator import SimulatedAnnotator
from services.openai.image_annotator import OpenAIImageAnnotator
from utils.config import Settings

logger = logging.getLogger(__name__)


def create_annotator(settings: Settings, openai_client: Optional[AsyncOpenAI] = None) -> BaseAnnotator:
    """
    Build the annotator selected by `settings.annotator_backend`.

    Args:
        settings: Runtime settings.
        openai_client: Async OpenAI client, required for the `openai` backend.

    Raises:
        RuntimeError: If the `openai` backend is selected without a client.
    """
    if settings.annotator_backend == "openai":
        if openai_client is None:
            raise RuntimeError("ANNOTATOR_BACKEND=openai requires an OpenAI client (set OPENAI_API_KEY)")
        logger.info("Using OpenAI annotator with model %s", settings.openai_model)
        return OpenAIImageAnnotator(openai_client, model=settings.openai_model)

    logger.info(
        "Using simulated annotator (skip_probability=%s, seed=%s)",
        settings.skip_probability,
        settings.annotator_seed,
    )
    return SimulatedAnnotator(skip_probability=settings.skip_probability, seed=settings.annotator_seed)
