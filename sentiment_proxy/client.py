"""
Client for the Azure AI Language sentiment endpoint.

Only the single-document analyze-sentiment call with opinion mining is
supported. The service reports opinions as a flat list of targets and a flat
list of assessments per sentence, linked by JSON-pointer relations; they are
resolved here so callers see each target with its own assessments.
"""

import re
import time
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sentiment_proxy.logger import get_logger
from sentiment_proxy.metrics import UPSTREAM_REQUEST_COUNT, UPSTREAM_REQUEST_DURATION

logger = get_logger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"

_ASSESSMENT_REF = re.compile(r"/sentences/(\d+)/assessments/(\d+)$")


class UpstreamModel(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class TextDocumentInput(UpstreamModel):
    id: str
    text: str
    language: str


class SentimentConfidenceScores(UpstreamModel):
    positive: float
    # Opinion targets and assessments are only scored positive/negative
    neutral: float = 0.0
    negative: float


class AssessmentSentiment(UpstreamModel):
    text: str
    sentiment: str
    confidence_scores: SentimentConfidenceScores
    is_negated: bool = False


class TargetSentiment(UpstreamModel):
    text: str
    sentiment: str
    confidence_scores: SentimentConfidenceScores


class MinedOpinion(UpstreamModel):
    target: TargetSentiment
    assessments: List[AssessmentSentiment] = Field(default_factory=list)


class SentenceSentiment(UpstreamModel):
    text: str
    sentiment: str
    confidence_scores: SentimentConfidenceScores
    opinions: List[MinedOpinion] = Field(default_factory=list)


class AnalyzeSentimentResult(UpstreamModel):
    id: str
    sentiment: str
    confidence_scores: SentimentConfidenceScores
    sentences: List[SentenceSentiment] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class DocumentError(UpstreamModel):
    id: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.code else self.message


DocumentResult = Union[AnalyzeSentimentResult, DocumentError]


class SentimentAnalyzer(Protocol):
    async def analyze_sentiment(self, document: TextDocumentInput) -> DocumentResult:
        ...


class MalformedResponseError(Exception):
    pass


def _resolve_assessment(
    ref: str, assessments: List[List[AssessmentSentiment]]
) -> AssessmentSentiment:
    match = _ASSESSMENT_REF.search(ref)
    if not match:
        raise MalformedResponseError(f"Unrecognized assessment reference: {ref}")
    sentence_index, assessment_index = (int(group) for group in match.groups())
    try:
        return assessments[sentence_index][assessment_index]
    except IndexError:
        raise MalformedResponseError(f"Dangling assessment reference: {ref}") from None


def parse_document(document: Dict[str, Any]) -> AnalyzeSentimentResult:
    """Parse a ``documents[]`` entry, resolving target/assessment relations"""
    raw_sentences = document.get("sentences") or []

    # Relations may point at any sentence of the document, so parse every
    # sentence's assessments before building opinions.
    assessments = [
        [
            AssessmentSentiment.model_validate(assessment)
            for assessment in sentence.get("assessments") or []
        ]
        for sentence in raw_sentences
    ]

    sentences = []
    for sentence in raw_sentences:
        opinions = []
        for target in sentence.get("targets") or []:
            opinions.append(
                MinedOpinion(
                    target=TargetSentiment.model_validate(target),
                    assessments=[
                        _resolve_assessment(relation["ref"], assessments)
                        for relation in target.get("relations") or []
                        if relation.get("relationType") == "assessment"
                    ],
                )
            )
        sentences.append(
            SentenceSentiment(
                text=sentence["text"],
                sentiment=sentence["sentiment"],
                confidence_scores=SentimentConfidenceScores.model_validate(
                    sentence["confidenceScores"]
                ),
                opinions=opinions,
            )
        )

    return AnalyzeSentimentResult(
        id=document["id"],
        sentiment=document["sentiment"],
        confidence_scores=SentimentConfidenceScores.model_validate(
            document["confidenceScores"]
        ),
        sentences=sentences,
        warnings=[
            warning.get("message", "") for warning in document.get("warnings") or []
        ],
    )


def parse_error(entry: Dict[str, Any]) -> DocumentError:
    """Parse an ``errors[]`` entry, preferring the more specific inner error"""
    error = entry.get("error") or {}
    inner = error.get("innererror") or {}
    return DocumentError(
        id=entry["id"],
        code=inner.get("code") or error.get("code") or "",
        message=inner.get("message") or error.get("message") or "",
    )


def parse_document_result(payload: Dict[str, Any], document_id: str) -> DocumentResult:
    for entry in payload.get("errors") or []:
        if entry.get("id") == document_id:
            return parse_error(entry)

    for document in payload.get("documents") or []:
        if document.get("id") == document_id:
            return parse_document(document)

    raise MalformedResponseError(
        f"Service response has no result for document {document_id!r}"
    )


class TextAnalyticsClient:
    """Sentiment analysis over the Text Analytics REST API"""

    def __init__(
        self,
        endpoint: str,
        key: str,
        http_client: httpx.AsyncClient,
        api_path: str = "/text/analytics/v3.1/sentiment",
        timeout: float = 30.0,
        model_version: Optional[str] = None,
    ):
        self.endpoint = endpoint
        self.key = key
        self.http_client = http_client
        self.api_path = api_path
        self.timeout = timeout
        self.model_version = model_version

    @property
    def url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/{self.api_path.lstrip('/')}"

    async def analyze_sentiment(self, document: TextDocumentInput) -> DocumentResult:
        """Analyze one document with opinion mining enabled"""
        params = {"opinionMining": "true"}
        if self.model_version:
            params["model-version"] = self.model_version

        start_time = time.time()
        try:
            response = await self.http_client.post(
                self.url,
                params=params,
                headers={SUBSCRIPTION_KEY_HEADER: self.key},
                json={"documents": [document.model_dump()]},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            UPSTREAM_REQUEST_COUNT.labels(outcome="http_error").inc()
            logger.warning(
                "Language service returned error status",
                url=self.url,
                status_code=e.response.status_code,
                detail=e.response.text,
            )
            raise
        except httpx.TimeoutException:
            UPSTREAM_REQUEST_COUNT.labels(outcome="timeout").inc()
            logger.warning("Language service request timeout", url=self.url)
            raise
        except httpx.HTTPError as e:
            UPSTREAM_REQUEST_COUNT.labels(outcome="unreachable").inc()
            logger.error("Language service request failed", url=self.url, error=str(e))
            raise
        finally:
            UPSTREAM_REQUEST_DURATION.observe(time.time() - start_time)

        result = parse_document_result(response.json(), document.id)
        outcome = "document_error" if isinstance(result, DocumentError) else "success"
        UPSTREAM_REQUEST_COUNT.labels(outcome=outcome).inc()

        logger.debug(
            "Language service response parsed",
            document_id=document.id,
            outcome=outcome,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return result
