from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI

from sentiment_proxy.client import SentimentAnalyzer, TextAnalyticsClient
from sentiment_proxy.logger import configure_logging, get_logger
from sentiment_proxy.settings import Settings, get_settings, settings

# Global variables
http_client: Optional[httpx.AsyncClient] = None


def build_http_client(config: Settings) -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        connect=config.connection_timeout,
        read=config.azure_timeout,
        write=10.0,
        pool=5.0,
    )

    limits = httpx.Limits(
        max_keepalive_connections=config.connection_pool_size,
        max_connections=config.connection_pool_size + 10,
    )

    return httpx.AsyncClient(timeout=timeout, limits=limits, follow_redirects=True)


def get_http_client() -> httpx.AsyncClient:
    """Shared HTTP client, created on first use when the lifespan did not run"""
    global http_client
    if http_client is None:
        http_client = build_http_client(settings)
    return http_client


def get_analyzer(
    config: Settings = Depends(get_settings),
) -> Optional[SentimentAnalyzer]:
    """Language service client, or None while credentials are missing"""
    if not config.language_service_configured:
        return None

    return TextAnalyticsClient(
        endpoint=config.azure_language_endpoint,
        key=config.azure_language_key.get_secret_value(),
        http_client=get_http_client(),
        api_path=config.azure_api_path,
        timeout=config.azure_timeout,
        model_version=config.azure_model_version,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    global http_client

    configure_logging()
    logger = get_logger(__name__)
    logger.info("Starting sentiment analysis proxy", version=settings.version)

    http_client = build_http_client(settings)
    logger.info("HTTP client initialized")

    # Credentials are only required per request
    if not settings.language_service_configured:
        logger.warning(
            "Language service credentials missing; analysis requests will fail",
            endpoint_set=bool(settings.azure_language_endpoint),
        )

    yield

    # Shutdown
    logger.info("Shutting down sentiment analysis proxy")
    if http_client:
        await http_client.aclose()
        http_client = None
    logger.info("Proxy shutdown completed")
