from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from cueboard.config import settings
from cueboard.routers import (
    auth_routes,
    companies,
    admin_companies,
    admin_users,
    admin_metrics,
    inventory,
    pos,
    finance,
    tables,
    analytics,
)

app = FastAPI(title="Cueboard", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid4())
    )
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

app.include_router(auth_routes.router)
app.include_router(companies.router)
app.include_router(admin_companies.router)
app.include_router(admin_users.router)
app.include_router(admin_metrics.router)
app.include_router(inventory.router)
app.include_router(pos.router)
app.include_router(finance.router)
app.include_router(tables.router)
app.include_router(analytics.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": "cueboard"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
