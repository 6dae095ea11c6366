"""Run the server: python -m scribbler"""

import uvicorn

from scribbler.config import settings


def main() -> None:
    uvicorn.run(
        "scribbler.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
