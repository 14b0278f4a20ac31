"""
OpenElevate Gamification Service Entry Point
- Launches the API server.
"""

import uvicorn

from openelevate.config import settings

if __name__ == "__main__":
    print("🚀 Starting OpenElevate Gamification Service")
    print(f"📍 Server will run at http://{settings.HOST}:{settings.PORT}")
    print(f"📋 Application log level: {settings.LOG_LEVEL.upper()}")

    # Application logging is configured in openelevate.main when the module loads
    # The log_level parameter here only controls uvicorn's own logging
    uvicorn.run(
        "openelevate.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level="info" if settings.DEBUG else "warning",
    )
