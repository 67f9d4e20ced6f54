import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.errors import ConflictError, NotFoundError, ValidationError
from app.api.routes.turns import router as turns_router
from app.api.routes.turn_stages import router as turn_stages_router
from app.api.routes.approvals import router as approvals_router
from app.api.routes.approval_thresholds import router as approval_thresholds_router
from app.api.routes.audit_logs import router as audit_logs_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# 1) Create the app FIRST
app = FastAPI(title="Turns Workflow Backend")

# 2) Add CORS Middleware BEFORE routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3) Include routers AFTER app is created
app.include_router(turns_router)
app.include_router(turn_stages_router)
app.include_router(approvals_router)
app.include_router(approval_thresholds_router)
app.include_router(audit_logs_router)


# 4) Service errors -> HTTP, same body shape as HTTPException
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# 5) Health check endpoints
@app.get("/health")
def health():
    return {"ok": True, "service": "turns-backend"}

@app.get("/db-health")
def db_health():
    db = SessionLocal()
    try:
        db.execute(text("select 1"))
        return {"ok": True, "db": "connected"}
    finally:
        db.close()
