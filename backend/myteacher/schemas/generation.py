from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class GenerateDraftRequest(BaseModel):
    section_key: str = Field(..., min_length=1)
    field_key: str = Field(..., min_length=1)
    student_context: Optional[Dict[str, Any]] = None
    user_prompt: Optional[str] = Field(None, max_length=2000)


class GenerateDraftResponse(BaseModel):
    text: str
    source_chunk_ids: List[str]
    section_tag: str
    tokens_used: int


class SectionAvailability(BaseModel):
    section_tag: str
    has_reference_content: bool


class GenerationAvailabilityResponse(BaseModel):
    plan_id: str
    plan_type: str
    sections: List[SectionAvailability]


class ReferencePreviewChunk(BaseModel):
    id: str
    section_tag: Optional[str] = None
    text: str
    grade_band: Optional[str] = None

