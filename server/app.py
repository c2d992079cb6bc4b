import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.code import router as code_router
from server.api.grading import router as grading_router
from server.core.errors import GradingError, ValidationError

logger = logging.getLogger(__name__)


app = FastAPI(title="prep-grader API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(grading_router)
app.include_router(code_router)


@app.exception_handler(GradingError)
async def grading_error_handler(request: Request, exc: GradingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.user_message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning("%s %s invalid request: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"message": ValidationError.default_user_message},
    )


@app.get("/healthz")
def healthz():
    return {"ok": True}
