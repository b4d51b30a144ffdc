#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Serves the reservation API with auto-reload against whatever DATABASE_URL
the environment or backend/.env provides; tables are created on startup.
"""
import os
from pathlib import Path
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("APP_ENV", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Reservation API on http://localhost:{port} (docs at /docs)")
    uvicorn.run("reservation_api.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
