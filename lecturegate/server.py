"""Run the API with uvicorn outside of a container."""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in {"1", "true", "yes"}
    uvicorn.run(
        "lecturegate.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=reload_flag,
    )


if __name__ == "__main__":
    main()
