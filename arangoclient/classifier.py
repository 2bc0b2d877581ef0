"""
Classification of raw transport outcomes into successes and failures.
"""
import logging
from typing import Any, Optional, Union

import requests
from urllib3.exceptions import ReadTimeoutError

from .exceptions import ArangoError, HttpError, TransportError
from .request import ArangoResponse, Result

logger = logging.getLogger(__name__)

RawOutcome = Union[requests.Response, requests.RequestException]


def parse_body(response: requests.Response) -> Any:
    """Decode a response body: JSON when declared as such, text otherwise."""
    if not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            logger.debug("Response declared JSON but could not be decoded")
    return response.text


def is_error_envelope(body: Any) -> bool:
    return isinstance(body, dict) and body.get("error") is True


def failed_before_response(error: requests.RequestException) -> bool:
    """
    Tell whether a transport exception was raised before any response arrived.

    Connect failures and timeouts waiting for the status line qualify. Errors
    raised while reading a body that had already started do not, since the
    server received the request and may have applied it.
    """
    if isinstance(error, (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError)):
        return False
    if isinstance(error, (requests.exceptions.ConnectTimeout, requests.exceptions.ReadTimeout)):
        return True
    if isinstance(error, requests.exceptions.ConnectionError):
        # Response.iter_content wraps a mid-body read timeout directly.
        return not (error.args and isinstance(error.args[0], ReadTimeoutError))
    return False


def classify(method: str, outcome: RawOutcome, endpoint: Optional[str] = None) -> Result[ArangoResponse]:
    """
    Classify a raw outcome.

    Args:
        method: HTTP method of the request
        outcome: Received response, or the exception raised by the transport
        endpoint: Base URL the request was sent to

    Returns:
        Result carrying an ArangoResponse, an ApplicationError, or a
        TransportError
    """
    if isinstance(outcome, requests.RequestException) and getattr(outcome, "response", None) is None:
        return Result.failure(
            TransportError(
                f"Request to {endpoint or 'server'} failed: {outcome}",
                cause=outcome,
                context={"endpoint": endpoint} if endpoint else None,
            )
        )
    if isinstance(outcome, requests.RequestException):
        outcome = outcome.response

    status = outcome.status_code
    headers = dict(outcome.headers)

    if method == "HEAD":
        if status == 404:
            return Result.success(ArangoResponse(status, headers, None, endpoint, found=False))
        if status >= 400:
            return Result.failure(HttpError(status))
        return Result.success(ArangoResponse(status, headers, None, endpoint))

    body = parse_body(outcome)
    if is_error_envelope(body):
        return Result.failure(
            ArangoError(
                error_num=body.get("errorNum"),
                code=body.get("code", status),
                message=body.get("errorMessage") or f"HTTP {status}",
            )
        )
    if status >= 400:
        return Result.failure(HttpError(status, body if isinstance(body, str) and body else None))
    return Result.success(ArangoResponse(status, headers, body, endpoint))
