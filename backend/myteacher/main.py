"""
MyTeacher API application.

Startup refuses to run with missing secrets, creates tables and seeds the
reference catalog (plan types, rule packs, evidence types). Every error
leaves the API in the same envelope:

    {"error": {"code": "...", "message": "...", "details": {...}}}
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

import myteacher.models  # noqa: F401  registers every table on Base.metadata
from myteacher.api.v1.router import api_router
from myteacher.core.config import settings
from myteacher.core.database import close_db, init_db, session_scope
from myteacher.core.exceptions import MyTeacherError, error_body, error_response
from myteacher.core.logging_config import logger
from myteacher.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from myteacher.core.rate_limiter import limiter, rate_limit_exceeded_handler
from myteacher.services.catalog_service import seed_reference_data

APP_VERSION = "1.0.0"

# framework-raised HTTP errors (unknown route, wrong method) mapped to our codes
HTTP_ERROR_CODES = {
    401: "ERR_API_AUTH_REQUIRED",
    403: "ERR_API_FORBIDDEN",
    404: "ERR_API_NOT_FOUND",
    405: "ERR_API_METHOD_NOT_ALLOWED",
    413: "ERR_API_PAYLOAD_TOO_LARGE",
}


def check_configuration() -> None:
    fatal, degraded = settings.startup_report()
    for problem in fatal:
        logger.critical(f"[Startup] {problem}")
    if fatal:
        raise RuntimeError(f"Invalid configuration: {'; '.join(fatal)}")
    for note in degraded:
        logger.warning(f"[Startup] {note}")


async def ensure_reference_data() -> None:
    await init_db()
    async with session_scope() as session:
        added = await seed_reference_data(session)
    seeded = {name: count for name, count in added.items() if count}
    logger.info(f"[Startup] Seeded reference data: {seeded}" if seeded else "[Startup] Reference data already present")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} {APP_VERSION} (api {settings.API_VERSION}, {settings.ENVIRONMENT})")
    check_configuration()
    await ensure_reference_data()
    yield
    logger.info(f"Stopping {settings.APP_NAME}")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Special education plan management: IEP, 504 and behavior plans with compliance tracking",
    version=APP_VERSION,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# last added runs first: CORS, then size limit, headers, logging
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time", "Content-Disposition"],
)


@app.exception_handler(MyTeacherError)
async def myteacher_error_handler(request: Request, exc: MyTeacherError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        errors.append({"field": field, "message": err.get("msg", ""), "type": err.get("type", "")})
    return JSONResponse(
        status_code=400,
        content=error_body("ERR_API_VALIDATION_FAILED", "Request validation failed", {"errors": errors}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            HTTP_ERROR_CODES.get(exc.status_code, "ERR_API_REQUEST_FAILED"),
            exc.detail if isinstance(exc.detail, str) else "Request failed",
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    message = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return JSONResponse(status_code=500, content=error_body("ERR_API_INTERNAL", message))


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "app_name": settings.APP_NAME, "version": APP_VERSION, "environment": settings.ENVIRONMENT}


@app.get("/", tags=["Root"])
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}", "version": APP_VERSION, "docs": "/docs", "health": "/health"}


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


def run():
    import uvicorn
    uvicorn.run("myteacher.main:app", host=settings.SERVER_HOST, port=settings.SERVER_PORT, reload=settings.DEBUG)


if __name__ == "__main__":
    run()
