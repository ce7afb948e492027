"""Exception handlers mapping pipeline errors to HTTP responses."""

import logging
from collections.abc import Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storytime.domain.errors import ConfigurationError, StoryGenerationError

logger = logging.getLogger(__name__)


def _field_name(loc: tuple) -> str:
    """Dotted field path without the request part prefix (body, query...)."""
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def required_body_fields(request: Request) -> list[str]:
    """Required fields of the matched route's body model, by wire name."""
    body_field = getattr(request.scope.get("route"), "body_field", None)
    model = getattr(getattr(body_field, "field_info", None), "annotation", None)
    fields = getattr(model, "model_fields", None) or {}
    return [field.alias or name for name, field in fields.items() if field.is_required()]


def format_validation_errors(
    exc: RequestValidationError, body_fields: Sequence[str] = ()
) -> dict:
    """Render validation errors as {message, errors: {field: [messages]}}.

    A request without a body is reported against each required body field.
    """
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        if error.get("type") == "missing" and loc == ("body",) and body_fields:
            for field in body_fields:
                errors.setdefault(field, []).append(f"The {field} field is required.")
            continue

        field = _field_name(loc)
        message = error.get("msg", "Invalid value.")
        if error.get("type") == "missing":
            message = f"The {field} field is required."
        elif message.startswith("Value error, "):
            message = message.removeprefix("Value error, ")
        errors.setdefault(field, []).append(message)

    messages = [m for field_messages in errors.values() for m in field_messages]
    summary = messages[0] if messages else "The given data was invalid."
    if len(messages) > 1:
        summary += f" (and {len(messages) - 1} more error{'s' if len(messages) > 2 else ''})"
    return {"message": summary, "errors": errors}


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = format_validation_errors(exc, required_body_fields(request))
    return JSONResponse(body, status_code=422)


async def configuration_exception_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.critical(f"Service not configured: {exc}")
    return JSONResponse({"error": str(exc)}, status_code=500)


async def generation_exception_handler(request: Request, exc: StoryGenerationError) -> JSONResponse:
    return JSONResponse({"error": "Story text generation failed"}, status_code=503)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the handlers to an application."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ConfigurationError, configuration_exception_handler)
    app.add_exception_handler(StoryGenerationError, generation_exception_handler)
