from __future__ import annotations

import os

from backend.app.main import app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=os.getenv("CARE_API_HOST", "0.0.0.0"),
        port=int(os.getenv("CARE_API_PORT", "8000")),
        reload=os.getenv("CARE_API_RELOAD", "true").lower() in {"1", "true", "yes"},
    )
