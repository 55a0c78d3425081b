#!/usr/bin/env python3
"""
Development server launcher for the Ollama edge relay.

Reads the logging level and listen address from the relay config, then starts
the FastAPI app with uvicorn. For production, run uvicorn (or another ASGI
server) against src.api.main:app directly.
"""

import logging
import os
import uvicorn
import sys
from pathlib import Path

# Add project root to Python path so `src.` imports work correctly
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(project_root))

from src.models.manager import BackendManager  # noqa: E402

if __name__ == "__main__":
    config = BackendManager().config
    server_cfg = config.get("server") or {}
    host = server_cfg.get("host", "0.0.0.0")
    port = int(os.environ.get("PORT", server_cfg.get("port", 8000)))
    level = str(config.get("logging", {}).get("level", "INFO")).upper()

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Starting Ollama Edge Relay Development Server")
    print(f"Backend: {config['backend']['settings']['base_url']}")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API documentation at: http://localhost:{port}/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(src_path)],
        log_level=level.lower()
    )
