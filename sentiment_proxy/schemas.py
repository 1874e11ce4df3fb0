from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Immutable value with camelCase JSON field names"""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class AnalysisRequest(ApiModel):
    text: Optional[str] = Field(default=None, description="Text to analyze")
    language: Optional[str] = Field(
        default=None, description="ISO 639-1 language code, defaults to pt"
    )


class ConfidenceScores(ApiModel):
    positive: float = Field(..., ge=0.0, le=1.0)
    neutral: float = Field(default=0.0, ge=0.0, le=1.0)
    negative: float = Field(..., ge=0.0, le=1.0)


class OpinionTarget(ApiModel):
    text: str
    sentiment: str
    confidence_scores: ConfidenceScores


class Assessment(ApiModel):
    text: str
    sentiment: str


class Opinion(ApiModel):
    target: OpinionTarget
    assessments: List[Assessment] = Field(default_factory=list)


class Sentence(ApiModel):
    text: str
    sentiment: str
    confidence_scores: ConfidenceScores
    opinions: List[Opinion] = Field(default_factory=list)


class AnalysisResult(ApiModel):
    document_text: str
    overall_sentiment: str
    confidence_scores: ConfidenceScores
    sentences: List[Sentence] = Field(default_factory=list)


class ApiResponse(ApiModel):
    success: bool
    data: Optional[AnalysisResult] = None
    error: Optional[str] = None

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class HealthResponse(ApiModel):
    status: str
    timestamp: str
