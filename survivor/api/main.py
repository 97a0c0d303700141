from fastapi import FastAPI
from survivor.utils.observability import get_metrics, Logger
from survivor.api.routes import router as api_router

logger = Logger(__name__)


def create_app() -> FastAPI:
    from survivor.config import settings

    # Configures structlog and the metrics registry on first use
    get_metrics()

    app = FastAPI(
        title="Survivor Pool API",
        description="Bracket generation and result cascade triggers for a tournament survivor pool.",
        version="1.0.0"
    )

    # Routes
    app.include_router(api_router, prefix="/api/v1")

    # Root redirect
    @app.get("/")
    def root():
        return {"message": "Survivor Pool API. Go to /docs for Swagger UI.", "version": "1.0.0"}

    logger.log_event("api_startup_complete", environment=settings.observability.environment)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("survivor.api.main:app", host="0.0.0.0", port=8000, reload=True)
