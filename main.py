import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db_models import ErrorResponse, FinalResponse, HealthResponse, IdentifyRequest
from db_setup import check_connection, get_db_connection, init_db
from errors import InvalidInputError, StoreError, TransientStoreError
from identity import identify as identify_contact

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.log_level,
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
_started = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(settings.db_name)
    yield


app = FastAPI(
    title="Bitespeed Contact Reconciliation API",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)


def get_db():
    conn = get_db_connection(settings.db_name)
    try:
        yield conn
    finally:
        conn.close()


def _error(status_code: int, error: str, message: str = None, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"][1:]) or "body"
        cause = (err.get("ctx") or {}).get("error")
        details.append({"field": field, "message": str(cause) if cause else err["msg"]})
    return _error(400, "Validation failed", details=details)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return _error(400, "Validation failed", details=[{"field": exc.field or "body", "message": str(exc)}])


@app.exception_handler(TransientStoreError)
async def transient_store_handler(request: Request, exc: TransientStoreError):
    logger.error("Store unavailable on %s: %s", request.url.path, exc)
    return _error(503, "Service unavailable", "Service temporarily unavailable")


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s: %s", request.url.path, exc)
    return _error(500, "Internal server error", str(exc) if settings.is_development else "Something went wrong")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return _error(500, "Internal server error", str(exc) if settings.is_development else "Something went wrong")


@app.get("/")
async def root():
    return {
        "message": "Bitespeed API is up",
        "service": app.title,
        "version": VERSION,
        "endpoints": {"identify": "POST /identify", "health": "GET /health"},
    }


@app.get("/health", response_model=HealthResponse)
def health(conn=Depends(get_db)):
    healthy = check_connection(conn)
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        database="connected" if healthy else "disconnected",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - _started, 3),
        version=VERSION,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())


@app.post("/identify", response_model=FinalResponse, responses={400: {"model": ErrorResponse}})
def identify(request: IdentifyRequest, conn=Depends(get_db)):
    result = identify_contact(
        conn,
        request.email,
        request.phoneNumber,
        retries=settings.transaction_retries,
    )
    return FinalResponse(contact=result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
