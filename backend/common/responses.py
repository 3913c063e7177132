"""
Response envelope: {"success": bool, "data": ..., "errors": [{"code", "message"}]}.
"""
from typing import Any, Dict, List, Optional

from rest_framework import status
from rest_framework.response import Response

from .outcomes import ErrorKind, Outcome

STATUS_FOR_ERROR = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DUPLICATE_NAME: status.HTTP_409_CONFLICT,
    ErrorKind.VERSION_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CANCELLED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def envelope(data: Any = None, errors: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    return {"success": not errors, "data": data, "errors": errors or []}


def error(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}


def _decorate(response: Response, outcome: Optional[Outcome]) -> Response:
    if outcome is None:
        return response
    if outcome.version:
        response["ETag"] = outcome.version
    if outcome.warnings:
        response["Warning"] = ", ".join(f'299 - "{w}"' for w in outcome.warnings)
    return response


def success_response(data: Any, outcome: Optional[Outcome] = None, status_code: int = status.HTTP_200_OK,
                     headers: Optional[Dict[str, str]] = None) -> Response:
    response = Response(envelope(data), status=status_code, headers=headers)
    return _decorate(response, outcome)


def no_content_response(outcome: Optional[Outcome] = None) -> Response:
    return _decorate(Response(status=status.HTTP_204_NO_CONTENT), outcome)


def failure_response(outcome: Outcome) -> Response:
    response = Response(
        envelope(errors=[error(outcome.error.value, outcome.message)]),
        status=STATUS_FOR_ERROR[outcome.error],
    )
    return _decorate(response, outcome)


def outcome_response(outcome: Outcome, serialize, status_code: int = status.HTTP_200_OK,
                     headers: Optional[Dict[str, str]] = None) -> Response:
    if not outcome.ok:
        return failure_response(outcome)
    return success_response(serialize(outcome.value), outcome, status_code, headers)
