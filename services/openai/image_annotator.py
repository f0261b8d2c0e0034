"""Description: Image annotator backed by OpenAI's Responses API."""

import base64
import logging
import mimetypes
import time
from typing import Any, Dict, List

import aiofiles
from openai import AsyncOpenAI

from models.image_record import ImageRecord
from services.annotation.base_annotator import AnnotatorOutput, BaseAnnotator
from services.errors import AnnotatorError
from services.openai.annotation_prompts import build_system_prompt, build_user_prompt
from services.openai.annotation_schema import FUNCTION_DEFINITION, FUNCTION_NAME
from services.openai.response_parser import extract_usage, parse_function_call

LOGGER = logging.getLogger(__name__)


def to_image_data_url(image_bytes: bytes, filename: str) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    mime_type = mimetypes.guess_type(filename)[0] or "image/jpeg"
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def output_from_arguments(arguments: Dict[str, Any]) -> AnnotatorOutput:
    """Map the `assess_image` tool arguments onto an AnnotatorOutput.

    Raises:
        ValueError: If the confidence score is missing or not a number.
    """
    raw_score = arguments.get("confidence_score")
    if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
        raise ValueError(f"Model returned an invalid confidence score: {raw_score!r}")
    score = min(max(float(raw_score), 0.0), 1.0)

    objects = arguments.get("objects") or []
    findings = {"objects": objects, "total_objects": len(objects)}
    return AnnotatorOutput(
        score=score,
        findings=findings,
        force_skip=not arguments.get("quality_acceptable", True),
    )


class OpenAIImageAnnotator(BaseAnnotator):
    """Annotate images by sending them to an OpenAI vision model."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5") -> None:
        """Initialize the annotator with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.system_prompt = build_system_prompt()

    async def analyze(self, image: ImageRecord) -> AnnotatorOutput:
        start_time = time.time()
        image_bytes = await self._read_image(image)
        inputs = self._build_inputs(image, image_bytes)

        try:
            response = await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
            )
        except Exception as exc:
            LOGGER.error("Error during OpenAI Responses API call for image %s: %s", image.id, exc)
            raise AnnotatorError(f"OpenAI request failed: {exc}", image_id=image.id) from exc

        try:
            output = output_from_arguments(parse_function_call(response, tool_name=FUNCTION_NAME))
        except (RuntimeError, ValueError) as exc:
            LOGGER.error("Error parsing OpenAI response for image %s: %s", image.id, exc)
            raise AnnotatorError(f"Unusable OpenAI response: {exc}", image_id=image.id) from exc

        usage = extract_usage(response)
        LOGGER.info(
            "Image %s assessed in %.3fs (input_tokens=%s, output_tokens=%s)",
            image.id,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return output

    async def _read_image(self, image: ImageRecord) -> bytes:
        try:
            async with aiofiles.open(image.storage_path, "rb") as f:
                data = await f.read()
        except OSError as exc:
            raise AnnotatorError(f"Cannot read image file {image.storage_path}: {exc}", image_id=image.id) from exc
        if not data:
            raise AnnotatorError(f"Image file {image.storage_path} is empty", image_id=image.id)
        return data

    def _build_inputs(self, image: ImageRecord, image_bytes: bytes) -> List[Dict[str, Any]]:
        """Build the Responses API input array."""
        return [
            {
                "type": "message",
                "role": "system",
                "content": [{"type": "input_text", "text": self.system_prompt}],
            },
            {
                "type": "message",
                "role": "user",
                "content": [
                    {"type": "input_text", "text": build_user_prompt(image.width, image.height, image.metadata)},
                    {"type": "input_image", "image_url": to_image_data_url(image_bytes, image.filename)},
                ],
            },
        ]
