import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from classpulse import __version__
from classpulse.core.exceptions import (
    AuthenticationError,
    ClassPulseError,
    UnexpectedError,
    ValidationError,
)
from classpulse.core.services.logging import get_logging_service

app = FastAPI(title="ClassPulse API", version=__version__)


@app.exception_handler(ClassPulseError)
async def classpulse_error_handler(request: Request, exc: ClassPulseError):
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are reported like any other missing/invalid field
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    error = ValidationError(f"{location}: {message}" if location else message)
    content = error.to_dict()
    content["errors"] = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors
    ]
    return JSONResponse(status_code=error.status_code, content=content)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    get_logging_service().log_error(
        "unexpected",
        f"{type(exc).__name__}: {exc}",
        path=request.url.path,
        method=request.method,
        traceback="".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
    )
    error = UnexpectedError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


from classpulse.api.routes import (
    auth,
    courses,
    assignments,
    behavior,
    profile,
    insights,
    teachers,
)

app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(assignments.router)
app.include_router(behavior.router)
app.include_router(profile.router)
app.include_router(insights.router)
app.include_router(teachers.router)


@app.get("/api/status")
async def get_status():
    return {"status": "online", "version": __version__}
