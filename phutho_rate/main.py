import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from phutho_rate.api.health import router as health_router
from phutho_rate.api.me import router as me_router
from phutho_rate.api.agencies import router as agencies_router
from phutho_rate.api.users import router as users_router
from phutho_rate.api.cycles import router as cycles_router
from phutho_rate.api.evaluations import router as evaluations_router
from phutho_rate.api.scores import router as scores_router
from phutho_rate.api.audit import router as audit_router
from phutho_rate.core.config import settings
from phutho_rate.core.exceptions import RateError
from phutho_rate.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Phu Tho Rate")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RateError)
async def rate_error_handler(request: Request, exc: RateError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request rejected: %s",
        exc.message,
        extra={"error_code": exc.error_code, "path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code, "details": exc.details},
    )


app.include_router(health_router)
app.include_router(me_router)
app.include_router(agencies_router)
app.include_router(users_router)
app.include_router(cycles_router)
app.include_router(evaluations_router)
app.include_router(scores_router)
app.include_router(audit_router)
