#!/usr/bin/env python3
import logging
import os
import sys
from pathlib import Path

# Add the parent directory to the Python path
sys.path.insert(0, str(Path(__file__).parent))

HOST = os.getenv("LOTOROOM_HOST", "0.0.0.0")
PORT = int(os.getenv("LOTOROOM_PORT", "8001"))
RELOAD = os.getenv("LOTOROOM_RELOAD", "1") == "1"
LOG_LEVEL = os.getenv("LOTOROOM_LOG_LEVEL", "INFO").upper()

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "lotoroom.app:app",      # import string, not the app object
        host=HOST,
        port=PORT,
        reload=RELOAD,
        log_level=LOG_LEVEL.lower(),
    )
