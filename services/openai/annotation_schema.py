"""Schema definitions for the image assessment tool."""

from typing import Any, Dict

FUNCTION_NAME = "assess_image"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": (
        "Return the overall detection confidence, whether the image quality allows "
        "annotation, and the objects found in the image."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "confidence_score": {
                "type": "number",
                "description": "Overall certainty of the annotation, between 0 and 1.",
            },
            "quality_acceptable": {
                "type": "boolean",
                "description": "False when the image is too blurry, dark or corrupted to annotate.",
            },
            "objects": {
                "type": "array",
                "description": "Objects detected in the image.",
                "items": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string", "description": "Short object category."},
                        "confidence": {"type": "number", "description": "Detection confidence, 0 to 1."},
                        "bbox": {
                            "type": "array",
                            "description": "Bounding box as [x, y, width, height] in pixels.",
                            "items": {"type": "integer"},
                        },
                    },
                    "required": ["type", "confidence", "bbox"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["confidence_score", "quality_acceptable", "objects"],
        "additionalProperties": False,
    },
    "strict": True,
}
