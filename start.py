#!/usr/bin/env python3
"""
Start script - handles PORT environment variable
"""
import os

if __name__ == "__main__":
    from core.config import settings

    port = int(os.getenv("PORT", settings.app_port))

    # Import and run uvicorn programmatically
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=port,
        log_level=settings.log_level.lower(),
        reload=settings.debug and settings.environment == "development"
    )
