from fastapi import FastAPI

from bradbury.routers import entries, health, stats, topics


def create_app() -> FastAPI:
    app = FastAPI(title="Bradbury", version="0.1.0")
    app.include_router(health.router)
    app.include_router(entries.router)
    app.include_router(topics.router)
    app.include_router(stats.router)
    return app


app = create_app()
