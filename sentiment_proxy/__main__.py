import uvicorn

from sentiment_proxy.settings import settings


def main():
    uvicorn.run(
        "sentiment_proxy.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
