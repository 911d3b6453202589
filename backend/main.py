import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from db.database import engine, Base
from auth.routes import router as auth_router
from auth.utils import client_ip
from api.habits import router as habits_router
from api.coach import router as coach_router
from api.users import router as users_router
from services.errors import HabitCoachError
from services.rate_limit_service import GENERAL_RULE, enforce_rate_limit

logger = logging.getLogger(__name__)

settings.validate_security_configuration()

# Create all tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not settings.SECURITY_HEADERS_ENABLED:
        return response
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.middleware("http")
async def general_rate_limit_middleware(request: Request, call_next):
    if request.method.upper() == "OPTIONS":
        return await call_next(request)
    ip_address = client_ip(request)
    # Blocked requests write an audit row, so keep the session work off the event loop.
    allowed, retry_after = await run_in_threadpool(
        enforce_rate_limit,
        rule=GENERAL_RULE,
        scope_key=ip_address,
        ip_address=ip_address,
        details={"path": request.url.path},
    )
    if not allowed:
        return JSONResponse(
            status_code=429,
            content={"error": GENERAL_RULE.message},
            headers={"Retry-After": str(retry_after)},
        )
    return await call_next(request)


@app.exception_handler(HabitCoachError)
async def habit_coach_error_handler(request: Request, exc: HabitCoachError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    _ = request
    errors = exc.errors()
    location = errors[0].get("loc", ()) if errors else ()
    field = str(location[1]) if len(location) > 1 else ""
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid {field}" if field else "Invalid request"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    _ = request
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Routers
app.include_router(auth_router, prefix="/api")
app.include_router(habits_router, prefix="/api")
app.include_router(coach_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Habit AI API is running"}


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
