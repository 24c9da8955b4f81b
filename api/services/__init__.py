"""
API Services - crop orchestration behind the routers.
"""

from api.services.analyze_service import AnalyzeService
from api.services.crop_service import CropService

__all__ = [
    "AnalyzeService",
    "CropService",
]
