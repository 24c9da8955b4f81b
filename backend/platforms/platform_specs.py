"""Social platform image size specifications loaded from config/platforms.yaml."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from backend.errors import InvalidParameterError
from backend.imaging.crop_box import parse_ratio

logger = logging.getLogger(__name__)

DEFAULT_PLATFORMS_PATH = Path(__file__).parent.parent.parent / "config" / "platforms.yaml"

RATIO_TOLERANCE = 0.001


@dataclass
class PlatformSpec:
    """Size requirements for one scene."""

    scene: str
    name: str
    ratio: str
    recommended_size: Tuple[int, int]
    min_size: Tuple[int, int] = (0, 0)
    max_size: Optional[Tuple[int, int]] = None
    description: str = ""
    safe_area: Dict[str, int] = field(default_factory=dict)
    official_source: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        return parse_ratio(self.ratio)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene": self.scene,
            "name": self.name,
            "ratio": self.ratio,
            "recommended_size": list(self.recommended_size),
            "min_size": list(self.min_size),
            "max_size": list(self.max_size) if self.max_size else None,
            "description": self.description,
            "safe_area": self.safe_area,
            "official_source": self.official_source,
        }


@dataclass
class SizeValidation:
    """Result of checking an output size against a platform."""

    valid: bool
    error: Optional[str] = None
    is_recommended_size: bool = False
    recommendation: Optional[str] = None


class PlatformRegistry:
    """Lookup of platform specs by scene and category."""

    def __init__(self, config_path: Optional[str] = None):
        path = Path(config_path) if config_path else DEFAULT_PLATFORMS_PATH
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        self.specs: Dict[str, PlatformSpec] = {}
        for scene, data in (config.get('platforms') or {}).items():
            self.specs[scene] = PlatformSpec(
                scene=scene,
                name=data['name'],
                ratio=str(data['ratio']),
                recommended_size=tuple(data['recommended_size']),
                min_size=tuple(data.get('min_size') or (0, 0)),
                max_size=tuple(data['max_size']) if data.get('max_size') else None,
                description=data.get('description', ''),
                safe_area=data.get('safe_area') or {},
                official_source=data.get('official_source'),
            )
        self.categories: Dict[str, List[str]] = {
            name: list(scenes) for name, scenes in (config.get('categories') or {}).items()
        }

        logger.info(f"Loaded {len(self.specs)} platform specs from {path}")

    def get(self, scene: str) -> Optional[PlatformSpec]:
        return self.specs.get(scene)

    def require(self, scene: str) -> PlatformSpec:
        """Spec for scene, raising InvalidParameterError for unknown scenes."""
        spec = self.get(scene)
        if spec is None:
            raise InvalidParameterError(f"Unknown scene: {scene}")
        return spec

    def all_scenes(self) -> List[str]:
        return list(self.specs)

    def by_category(self, category: str) -> List[str]:
        return self.categories.get(category, [])

    def validate_output_size(self, output_size: Tuple[int, int], scene: str) -> SizeValidation:
        """Check an output size against the scene's ratio and size bounds."""
        spec = self.get(scene)
        if spec is None:
            return SizeValidation(valid=False, error=f"Unknown scene: {scene}")

        width, height = output_size
        if width <= 0 or height <= 0:
            return SizeValidation(valid=False, error=f"Invalid size: {width}x{height}")

        actual_ratio = width / height
        expected_ratio = spec.aspect_ratio
        if abs(actual_ratio - expected_ratio) > RATIO_TOLERANCE:
            return SizeValidation(
                valid=False,
                error=(
                    f"Ratio mismatch: expected {spec.ratio} ({expected_ratio:.3f}), "
                    f"got {actual_ratio:.3f}"
                ),
            )

        min_w, min_h = spec.min_size
        if width < min_w or height < min_h:
            return SizeValidation(
                valid=False,
                error=f"Size too small: minimum {min_w}x{min_h}, got {width}x{height}",
            )

        if spec.max_size:
            max_w, max_h = spec.max_size
            if width > max_w or height > max_h:
                return SizeValidation(
                    valid=False,
                    error=f"Size too large: maximum {max_w}x{max_h}, got {width}x{height}",
                )

        rec_w, rec_h = spec.recommended_size
        is_recommended = (width, height) == (rec_w, rec_h)
        return SizeValidation(
            valid=True,
            is_recommended_size=is_recommended,
            recommendation=None if is_recommended else f"Use {rec_w}x{rec_h} for best results",
        )
