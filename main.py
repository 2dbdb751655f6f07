from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from typing import Optional
from app.core.config import settings
from app.core.logging import setup_logging
from app.core.scheduler import create_scheduler
from app.api.stremio import router as stremio_router
from app.services.container import Services, build_services


def create_app(services: Optional[Services] = None, start_scheduler: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
    )
    app.state.services = services or build_services(settings)
    app.state.scheduler = None

    # CORS (Stremio web runs on another origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
        logger.info(f"  REALDEBRID_API_KEY: {'set' if settings.REALDEBRID_API_KEY else 'missing'}")
        logger.info(f"  TMDB_API_KEY: {'set' if settings.TMDB_API_KEY else 'missing'}")
        if start_scheduler:
            await app.state.services.store.refresh()
            app.state.scheduler = create_scheduler(
                app.state.services.store,
                refresh_hour=settings.SCHEDULE_REFRESH_HOUR,
                interval_hours=settings.SCHEDULE_REFRESH_INTERVAL_HOURS,
            )
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        await app.state.services.aclose()

    @app.get("/")
    async def root():
        store = app.state.services.store
        return {
            "message": f"{settings.PROJECT_NAME} is running",
            "manifest": "/manifest.json",
            "entries": len(store.current_entries()),
            "last_refresh": store.last_refresh,
        }

    app.include_router(stremio_router)
    return app


setup_logging(settings.LOG_LEVEL)
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
