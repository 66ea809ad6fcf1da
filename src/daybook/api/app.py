"""FastAPI application factory for the daybook REST API."""

from fastapi import APIRouter, FastAPI

from daybook.api.routes import register_routes


def create_app(ctx) -> FastAPI:
    """Build and return a FastAPI app wired to the given DaybookContext."""
    app = FastAPI(title="daybook", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, ctx)
    app.include_router(api)

    return app
