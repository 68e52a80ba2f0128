# errors.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


class StudentError(Exception):
    """Base error of the etudiants API, rendered as a failed envelope."""

    status_code = 500
    message = "Erreur serveur"

    def __init__(self, message: Optional[str] = None, error: Optional[Any] = None):
        if message is not None:
            self.message = message
        self.error = error
        super().__init__(self.message)


class InvalidInputError(StudentError):
    status_code = 400
    message = "Données invalides"


class DuplicateNameError(StudentError):
    status_code = 400
    message = "Un étudiant avec ce nom et prénom existe déjà"


class DuplicateEmailError(StudentError):
    status_code = 400
    message = "Email déjà utilisé"


class InvalidIdError(StudentError):
    status_code = 400
    message = "ID invalide"


class NotFoundError(StudentError):
    status_code = 404
    message = "Étudiant non trouvé"


class UpdateError(StudentError):
    status_code = 400
    message = "Erreur de mise à jour"


class InternalError(StudentError):
    status_code = 500
    message = "Erreur serveur"


def error_body(exc: StudentError) -> dict:
    body = {"success": False, "message": exc.message}
    if exc.error is not None:
        body["error"] = exc.error
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Turn every failure into the ``{success: false, message, error?}`` envelope."""

    @app.exception_handler(StudentError)
    async def student_error_handler(request: Request, exc: StudentError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(error_body(exc)))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Rejected request on {request.url.path}: {exc.errors()}")
        error = InvalidInputError(error=format_errors(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error_body(error))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = InternalError(error=str(exc))
        return JSONResponse(status_code=error.status_code, content=error_body(error))


def format_errors(errors) -> str:
    """Flatten pydantic error dicts into ``field: reason; field: reason``."""
    parts = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)
