"""
Conversion of service Results into HTTP responses.
"""
from http import HTTPStatus
from typing import Any, List

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from utils.result import Result


def respond(result: Result) -> JSONResponse:
    """Serialise a Result with its own status code."""
    return JSONResponse(status_code=result.status_code.value, content=jsonable_encoder(result.to_dict()))


def validation_failure(errors: List[Any]) -> JSONResponse:
    """400 response listing validation errors, as produced for invalid request bodies."""
    body = Result.invalid_input("Validation failed").to_dict()
    body["errors"] = errors
    return JSONResponse(status_code=HTTPStatus.BAD_REQUEST.value, content=jsonable_encoder(body))
