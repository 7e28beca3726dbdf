"""Run the Beam server: ``python -m beam``."""
import uvicorn

from beam.config import settings


def main() -> None:
    uvicorn.run("beam.main:app", host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
