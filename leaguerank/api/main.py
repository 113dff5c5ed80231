"""
Main FastAPI application for the league ranking engine.

Endpoints:
- Rankings: compute and explain composite power rankings for a league week
- Backtests: evaluate stored rankings against what happened afterwards
- Learning: inspect, run and roll back learned composite parameters
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import settings
from ..services import Services, build_services
from .routers import backtests, learning, rankings


def create_app(services: Services | None = None) -> FastAPI:
    """Build the API around a set of services (built from settings when omitted)."""
    app = FastAPI(
        title="League Rankings API",
        description="Composite power rankings for fantasy leagues",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.services = services or build_services(settings)

    @app.get("/")
    async def root():
        return {
            "message": "League Rankings API",
            "version": __version__,
            "docs": f"http://{settings.api_host}:{settings.api_port}/docs",
        }

    @app.get("/health")
    async def health_check():
        weights = app.state.services.weights.config()
        return {"status": "healthy", "weight_version": weights.version}

    app.include_router(rankings.router, prefix="/api")
    app.include_router(backtests.router, prefix="/api")
    app.include_router(learning.router, prefix="/api")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port)
