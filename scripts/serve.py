"""
FastAPI server for the Neighborhood Collective chat API.

Usage:
    python scripts/serve.py              # development, auto-reload
    python scripts/serve.py --prod       # production, no reload
    python scripts/serve.py --port 9000
"""

import argparse
import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
os.chdir(project_root)

import uvicorn
from loguru import logger


def main():
    """Start the API server"""
    parser = argparse.ArgumentParser(description="Run the chat API server")
    parser.add_argument("--prod", action="store_true", help="Disable auto-reload")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    base = f"http://localhost:{args.port}"
    logger.info("=" * 80)
    logger.info(f"Neighborhood Collective Chat - API Server ({'production' if args.prod else 'development'})")
    logger.info("=" * 80)
    logger.info(f"Server will be available at: {base}")
    logger.info(f"API Documentation: {base}/docs")
    logger.info(f"Health Check: {base}/health")
    logger.info(f"Chat Streaming: POST {base}/api/chat/completion")
    logger.info("Press CTRL+C to stop the server")
    logger.info("=" * 80)

    options = dict(host=args.host, port=args.port, log_level="info", access_log=True)
    if not args.prod:
        options.update(reload=True, reload_dirs=[str(project_root / "collective_chat")])

    uvicorn.run("collective_chat.api.app:app", **options)


if __name__ == "__main__":
    main()
