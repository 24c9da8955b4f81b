"""
Vision module for crop suggestions from an OpenAI-compatible vision model.

Provides CropAdvisor with retry and preset fallback, the result cache
used to deduplicate repeated uploads, and cost tracking.
"""

from .cost_tracker import CostTracker, estimate_cost
from .crop_advisor import CropAdvisor
from .fallback import fallback_suggestion
from .result_cache import ResultCache
from .suggestion import CropSuggestion

__all__ = [
    "CropAdvisor",
    "CropSuggestion",
    "CostTracker",
    "ResultCache",
    "estimate_cost",
    "fallback_suggestion",
]
