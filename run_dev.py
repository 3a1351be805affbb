#!/usr/bin/env python3
"""
Development runner script for lpgraph.
Starts the API server with auto-reload.
"""

import sys
from pathlib import Path

from dotenv import load_dotenv
import uvicorn

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv()

from config.settings import get_settings


def main():
    settings = get_settings()

    print(f"""
  lpgraph Development Server

  API Server:  http://localhost:{settings.api_port}
  API Docs:    http://localhost:{settings.api_port}/docs
  Graph DB:    {settings.graph_db_uri}

  Press Ctrl+C to stop
    """)

    uvicorn.run(
        "lpgraph.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        app_dir=str(PROJECT_ROOT),
        log_level="debug" if settings.debug else "info"
    )


if __name__ == "__main__":
    main()
