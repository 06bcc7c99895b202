# API package - FastAPI components
from .models import (
    AnalysisRequest,
    AnalysisResponse,
    ErrorResponse,
)

__all__ = [
    # Models
    "AnalysisRequest",
    "AnalysisResponse",
    "ErrorResponse",
]
