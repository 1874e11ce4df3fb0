from datetime import datetime, timezone
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Request

from sentiment_proxy.client import DocumentError, SentimentAnalyzer, TextDocumentInput
from sentiment_proxy.errors import (
    ConfigurationError,
    ProxyError,
    UnexpectedError,
    UpstreamError,
    ValidationError,
)
from sentiment_proxy.formatting import format_result
from sentiment_proxy.logger import get_logger
from sentiment_proxy.schemas import AnalysisRequest, ApiResponse, HealthResponse
from sentiment_proxy.settings import Settings, get_settings
from sentiment_proxy.utils import get_analyzer

logger = get_logger(__name__)
router = APIRouter()

# Only the first document of the batch is ever sent
DOCUMENT_ID = "0"


async def read_analysis_request(request: Request) -> AnalysisRequest:
    # Malformed JSON is left to propagate as an unexpected failure
    body = await request.json()
    try:
        return AnalysisRequest.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Invalid request body: {e.error_count()} invalid field(s)"
        ) from e


@router.post(
    "/sentiment-analysis",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ApiResponse}, 500: {"model": ApiResponse}},
)
async def analyze_sentiment(
    request: Request,
    config: Settings = Depends(get_settings),
    analyzer: Optional[SentimentAnalyzer] = Depends(get_analyzer),
):
    """Analyze the sentiment of one text via the Azure AI Language service"""
    try:
        if not config.language_service_configured or analyzer is None:
            raise ConfigurationError()

        body = await read_analysis_request(request)
        if not body.text or not body.text.strip():
            raise ValidationError("Text is required for analysis")

        language = body.language or config.default_language
        logger.info(
            "Sentiment analysis request received",
            text_length=len(body.text),
            language=language,
        )

        result = await analyzer.analyze_sentiment(
            TextDocumentInput(id=DOCUMENT_ID, text=body.text, language=language)
        )

        if isinstance(result, DocumentError):
            logger.warning(
                "Language service rejected the document",
                code=result.code,
                message=result.message,
            )
            raise UpstreamError(str(result))

        analysis = format_result(body.text, result)
        logger.info(
            "Sentiment analysis completed",
            overall_sentiment=analysis.overall_sentiment,
            sentence_count=len(analysis.sentences),
        )
        return ApiResponse(success=True, data=analysis)
    except ProxyError:
        raise
    except Exception as e:
        logger.exception(
            "Sentiment analysis failed", error=str(e), error_type=type(e).__name__
        )
        raise UnexpectedError() from e


@router.get("/health", response_model=HealthResponse)
async def health_check():
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return HealthResponse(status="OK", timestamp=timestamp.replace("+00:00", "Z"))
