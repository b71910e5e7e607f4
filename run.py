#!/usr/bin/env python3
"""
Eagle Bank Entry Point

Starts the FastAPI server with the ledger backend.
"""

import sys

from eagle_bank.api import run_server
from eagle_bank.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Eagle Bank API...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Eagle Bank API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
