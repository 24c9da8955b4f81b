"""Preset aesthetic crops used when the vision model gives no usable answer."""

import logging
import math
import random
from typing import Dict, List, Optional, Tuple

from backend.imaging.crop_box import validate_and_fix_crop_params
from backend.vision.suggestion import CropSuggestion

logger = logging.getLogger(__name__)

# (x, y, width, height) as fractions of the source size
_PRESETS: List[Tuple[Tuple[float, float, float, float], Dict[str, Dict[str, str]]]] = [
    (
        (0.10, 0.15, 0.80, 0.70),
        {
            "zh": {
                "title": "上方留白聚焦",
                "effection": "强化前景主体故事感。去除上方干扰元素，增加下方主体权重，远近对比更加明显。",
            },
            "en": {
                "title": "Top trim focus",
                "effection": "Strengthens the foreground story by removing distractions at the top "
                "and giving the subject below more weight.",
            },
        },
    ),
    (
        (0.15, 0.10, 0.70, 0.80),
        {
            "zh": {
                "title": "紧密框架突出",
                "effection": "突出中心主体的细节表达。裁掉边缘分散注意力的元素，主体占据画面核心区域，情绪传达更直接。",
            },
            "en": {
                "title": "Tight frame",
                "effection": "Brings out the central subject's detail by cutting distracting edges "
                "so the subject fills the core of the frame.",
            },
        },
    ),
    (
        (0.20, 0.20, 0.60, 0.60),
        {
            "zh": {
                "title": "方形平衡取景",
                "effection": "营造稳定的视觉节奏感。保持主体居中位置，去除多余边缘内容，整体画面更加紧凑统一。",
            },
            "en": {
                "title": "Balanced center",
                "effection": "Creates a steady rhythm by keeping the subject centered and removing "
                "surplus edges for a compact composition.",
            },
        },
    ),
]


def fallback_suggestion(
    original_width: int,
    original_height: int,
    language: str = "zh",
    rng: Optional[random.Random] = None,
) -> CropSuggestion:
    """Pick one preset crop at random and fit it to the image."""
    rng = rng or random
    (fx, fy, fw, fh), texts = rng.choice(_PRESETS)

    proposal = {
        "x": math.floor(original_width * fx),
        "y": math.floor(original_height * fy),
        "width": math.floor(original_width * fw),
        "height": math.floor(original_height * fh),
    }
    box, errors = validate_and_fix_crop_params(proposal, original_width, original_height)
    analysis = dict(texts.get(language) or texts["en"])

    logger.info(f"Using fallback crop '{analysis['title']}' for {original_width}x{original_height}")
    return CropSuggestion(
        analysis=analysis,
        crop_params=box,
        crop_errors=errors,
        attempt_count=0,
        fallback_used=True,
        model="fallback",
        prompt_version="fallback",
    )
