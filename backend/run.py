#!/usr/bin/env python3
# backend/run.py
"""
Development server runner for the scheduling API.

Defaults to a local SQLite file and in-process locks; set DATABASE_URL,
LOCK_BACKEND=redis and REDIS_URL to run against shared infrastructure.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting scheduling API on http://localhost:{port}")
    print(f"API Docs: http://localhost:{port}/docs")

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=os.getenv("RELOAD", "true").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
