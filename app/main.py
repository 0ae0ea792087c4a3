# Run from project root: uvicorn app.main:app --reload

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.config import load_settings
from app.core.errors import ServiceUnavailableError
from app.services.agent_service import AgentService, build_agent_service

logging.basicConfig(level=logging.INFO)


def create_app(agent_service: AgentService | None = None) -> FastAPI:
    """Build the API. Settings are read once here unless a ready service is passed in."""
    app = FastAPI(title="Document Agent Chat Backend")
    app.state.agent_service = agent_service or build_agent_service(load_settings())
    app.include_router(router)

    @app.exception_handler(ServiceUnavailableError)
    async def service_unavailable(_: Request, exc: ServiceUnavailableError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"success": False, "error": exc.message})

    return app


app = create_app()
