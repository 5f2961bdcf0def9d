from __future__ import annotations

from fastapi import FastAPI

from kiln import __version__
from kiln.api.endpoints import artifacts, health, metrics, recipes, runs
from kiln.api.middleware.error_shaping import SafeErrorMiddleware
from kiln.api.middleware.request_context import RequestContextMiddleware

app = FastAPI(
    title="kiln",
    version=__version__,
)

# Starlette reverses add_middleware order: the LAST call is the outermost wrapper.
# Runtime order: SafeErrorMiddleware -> RequestContext -> handler
app.add_middleware(RequestContextMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(recipes.router)
app.include_router(runs.router)
app.include_router(artifacts.router)
