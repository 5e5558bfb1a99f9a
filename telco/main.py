from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from telco.api.routes import router
from telco.api.admin_routes import router as admin_router
from telco.core.errors import (
    DuplicateKeyError,
    InvalidStateError,
    NetworkError,
    TargetUnavailableError,
    UnknownKeyError,
)
from telco.observability.logging import log
from telco.settings import settings

app = FastAPI(title="Telco Network API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}


def status_for(exc: NetworkError) -> int:
    if isinstance(exc, UnknownKeyError):
        return 404
    if isinstance(exc, (DuplicateKeyError, TargetUnavailableError, InvalidStateError)):
        return 409
    return 400


# ---------------------------------------------------------------------------
# Every refusal carries its own code so callers can tell "target off" from
# "target busy" from "target silent" without parsing the detail text.
# ---------------------------------------------------------------------------
@app.exception_handler(NetworkError)
async def network_error_handler(request: Request, exc: NetworkError):
    status = status_for(exc)
    log(event="request_refused", path=request.url.path, code=exc.code, status=status)
    return JSONResponse(
        status_code=status,
        content={"status": "error", "code": exc.code, "detail": exc.detail},
    )
