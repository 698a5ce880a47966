#!/usr/bin/env python3
"""
Staffing Back Office - Development Server Runner

Loads .env, puts src on the Python path and starts uvicorn.
"""

import os
import sys

from dotenv import load_dotenv

project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, "src")

if src_path not in sys.path:
    sys.path.insert(0, src_path)

# JWT_SECRET and SMTP_* are read straight from the environment
load_dotenv(os.path.join(project_root, ".env"))


if __name__ == "__main__":
    import uvicorn

    from config.settings import get_settings
    from middleware.request_id import configure_logging

    configure_logging()
    settings = get_settings()

    uvicorn.run(
        "web.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
        reload_dirs=[src_path],
        log_level="info",
    )
