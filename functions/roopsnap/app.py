"""
FastAPI application entry point for the studio site.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from roopsnap.config import get_settings
from roopsnap.errors import register_exception_handlers
from roopsnap.pages import router as pages_router
from roopsnap.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="RoopSnap Photography", version="0.1.0")
    register_exception_handlers(app)
    app.include_router(pages_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
