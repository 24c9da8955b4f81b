"""Crop suggestion returned by the crop advisor."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from backend.imaging.crop_box import CropBox


@dataclass
class CropSuggestion:
    """A crop rectangle with the model's rationale and how it was obtained."""

    analysis: Dict[str, Any]
    crop_params: CropBox
    crop_errors: List[str] = field(default_factory=list)
    attempt_count: int = 1
    fallback_used: bool = False
    model: str = ""
    prompt_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis": self.analysis,
            "crop_params": self.crop_params.to_dict(),
            "validation_info": {
                "crop_errors": self.crop_errors,
                "attempt_count": self.attempt_count,
                "fallback_used": self.fallback_used,
            },
        }
