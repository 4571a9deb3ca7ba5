# best_image/main.py
# Responsibility: Application entry point. Configures and launches the FastAPI app.

import uvicorn
from fastapi import FastAPI

from best_image.config.settings import settings
from best_image.routers import image


def create_app() -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.
    """
    app = FastAPI(
        title="Best Image",
        description="Selects the most representative image for a web page.",
        version="1.0.0",
        debug=settings.SERVER.DEBUG
    )

    # Register Routers
    app.include_router(image.router)

    # Health Check
    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "ok", "version": "1.0.0"}

    return app

# Application instance
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "best_image.main:app",
        host=settings.SERVER.HOST,
        port=settings.SERVER.PORT,
        reload=settings.SERVER.DEBUG
    )
