import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from caseflow.application import get_session_registry
from caseflow.core.settings import load_settings
from caseflow.infrastructure import DocumentumEngineClient, configure_engine_client
from caseflow.routes import cases, sessions, workflows


def create_app() -> FastAPI:
    load_dotenv()
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client: DocumentumEngineClient | None = None
    if settings.documentum is not None:
        dctm = settings.documentum
        client = DocumentumEngineClient(
            dctm.url,
            dctm.repository,
            dctm.username,
            dctm.password,
            timeout=dctm.timeout,
        )
        configure_engine_client(client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if client is not None:
            await client.close()

    app = FastAPI(title="Caseflow Workflow Console API", version="0.1.0", lifespan=lifespan)

    get_session_registry().configure(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sessions.router, prefix="/api")
    app.include_router(cases.router, prefix="/api")
    app.include_router(workflows.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Caseflow Workflow Console API",
                "docs": "/docs",
                "health": "/api/workflows/processes",
            }
        )

    return app


app = create_app()
