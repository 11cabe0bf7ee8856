"""Console entry point: serve the app with uvicorn"""
import uvicorn

from sessionguard.config import settings


def main() -> None:
    uvicorn.run(
        "sessionguard.main:app",
        host=settings.HOST,
        port=int(settings.PORT),
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
