#backend/app/main.py

import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from backend.app.api.routes import api_router
from backend.app.config import settings
from backend.app.db import init_db

@asynccontextmanager
async def _create_tables(app: FastAPI):
    init_db()
    yield

class CVPipelineApp:
    def __init__(self, create_tables: bool = True):
        self.app = FastAPI(
            title="CV Tailoring Pipeline API",
            description="Triggers and inspects background CV tailoring jobs.",
            version="0.3.0",
            lifespan=_create_tables if create_tables else None,
        )
        self._configure_cors()
        self.include_routers()

    def _configure_cors(self):
        origins_env = os.getenv("BACKEND_CORS_ORIGINS", settings.BACKEND_CORS_ORIGINS)
        origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def include_routers(self):
        self.app.include_router(api_router)

def get_app():
    """Entrypoint for ASGI"""
    return CVPipelineApp().app

# Run with 'uvicorn backend.app.main:app'
app = get_app()
