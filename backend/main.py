"""Local entry point: ``python main.py`` or ``uvicorn main:app`` from backend/."""

import os

from dotenv import load_dotenv

# Settings are read when eventasap is imported, so .env goes into os.environ first
load_dotenv()

from eventasap.main import app  # noqa: E402,F401


def run() -> None:
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "0") == "1",
        workers=int(os.getenv("UVICORN_WORKERS", "1")),
        timeout_keep_alive=int(os.getenv("UVICORN_KEEPALIVE", "65")),
    )


if __name__ == "__main__":
    run()
