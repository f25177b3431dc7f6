import uvicorn

from riptide.core.config import get_settings


def run():
    settings = get_settings()
    uvicorn.run(
        "riptide.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level="warning" if settings.production else settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
