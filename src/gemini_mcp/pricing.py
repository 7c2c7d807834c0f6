"""
Cost estimates for Gemini usage records.

Text prices are USD per 1M tokens, image prices USD per image. Sources:
https://ai.google.dev/pricing plus published Nano Banana estimates.
"""

from typing import Any, Dict, Optional

TEXT_PRICING: Dict[str, Dict[str, float]] = {
    "gemini-3-pro": {"input": 2.0, "output": 12.0, "thoughts": 12.0},
    "gemini-3-flash": {"input": 0.5, "output": 3.0, "thoughts": 3.0},
}

# Used for text models missing from TEXT_PRICING; such estimates are flagged.
DEFAULT_TEXT_PRICING: Dict[str, float] = {"input": 2.0, "output": 12.0, "thoughts": 12.0}

IMAGE_PRICING: Dict[str, float] = {
    "nano-banana": 0.039,
    "nano-banana-pro": 0.15,
}


def _round_micro(value: float) -> float:
    return round(value, 6)


def calculate_text_cost(
    model: str,
    prompt_tokens: Optional[int] = None,
    completion_tokens: Optional[int] = None,
    thoughts_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    pricing = TEXT_PRICING.get(model)
    effective = pricing or DEFAULT_TEXT_PRICING
    input_cost = (prompt_tokens or 0) / 1_000_000 * effective["input"]
    output_cost = (completion_tokens or 0) / 1_000_000 * effective["output"]
    thoughts_cost = (thoughts_tokens or 0) / 1_000_000 * effective["thoughts"]
    return {
        "input_cost": _round_micro(input_cost),
        "output_cost": _round_micro(output_cost + thoughts_cost),
        "total_cost": _round_micro(input_cost + output_cost + thoughts_cost),
        "currency": "USD",
        "estimated": pricing is None,
    }


def calculate_image_cost(model: str) -> Dict[str, Any]:
    per_image = IMAGE_PRICING.get(model)
    if per_image is None:
        return {"image_cost": 0.0, "total_cost": 0.0, "currency": "USD", "estimated": True}
    image_cost = _round_micro(per_image)
    return {
        "image_cost": image_cost,
        "total_cost": image_cost,
        "currency": "USD",
        "estimated": False,
    }
