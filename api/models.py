from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Models
class AnalysisRequest(BaseModel):
    urls: List[str] = []


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ttfb: float = 0
    fully_loaded: float = 0
    largest_contentful_paint: float = 0
    first_contentful_paint: float = 0
    cumulative_layout_shift: float = 0
    transfer_size: float = 0


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
