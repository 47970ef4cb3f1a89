"""
Run script for the Cadence API.
"""

import os
import uvicorn

from cadence.infrastructure.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "cadence.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=os.getenv("CADENCE_DEV_MODE", "").lower() == "true",
        log_level=settings.log_level.lower()
    )
