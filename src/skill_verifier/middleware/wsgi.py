"""
WSGI middleware for skill request verification (Flask).
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Callable, Iterable

from ..errors import MalformedRequestError, MissingHeaderError, SkillVerificationError
from ..headers import extract_wsgi_headers
from ..models import SkillState, VerificationResult
from ..verifier import RequestVerifier

DECISION_HEADER = "X-Skill-Verification"
RAW_BODY_KEY = "skill_verifier.raw_body"
STATE_KEY = "skill_verifier.state"


def _read_body(environ: dict[str, Any]) -> bytes:
    """
    Buffer the request body once and reset ``wsgi.input`` for downstream apps.

    The body length must come from ``CONTENT_LENGTH`` unless the server marks
    the stream as terminated (``wsgi.input_terminated``), which is how chunked
    bodies are passed through.

    Raises:
        MissingHeaderError: No length and no terminated stream
        MalformedRequestError: ``CONTENT_LENGTH`` is not a non-negative integer
    """
    stream = environ.get("wsgi.input")
    raw_length = environ.get("CONTENT_LENGTH")
    if raw_length:
        try:
            length = int(raw_length)
        except ValueError:
            length = -1
        if length < 0:
            raise MalformedRequestError(f"Invalid Content-Length header: {raw_length!r}")
        body = stream.read(length) if stream is not None and length > 0 else b""
    elif environ.get("wsgi.input_terminated") and stream is not None:
        body = stream.read()
    else:
        raise MissingHeaderError("Content-Length")
    environ["wsgi.input"] = BytesIO(body)
    environ[RAW_BODY_KEY] = body
    return body


class SkillVerificationWSGIMiddleware:
    """
    WSGI middleware that gates skill requests on the platform signature.

    Stores the buffered body in ``environ["skill_verifier.raw_body"]`` and a
    SkillState in ``environ["skill_verifier.state"]``.

    Args:
        app: WSGI application
        verifier: RequestVerifier used for every gated request
        protected_paths: Paths whose requests are verified
        methods: HTTP methods that are verified. Default: POST only

    Example (Flask):
        >>> app = Flask(__name__)
        >>> app.wsgi_app = SkillVerificationWSGIMiddleware(
        ...     app.wsgi_app, verifier=RequestVerifier.from_settings(settings)
        ... )
    """

    def __init__(
        self,
        app: Callable[..., Iterable[bytes]],
        verifier: RequestVerifier,
        protected_paths: Iterable[str] = ("/api/skill",),
        methods: Iterable[str] = ("POST",),
    ):
        self.app = app
        self.verifier = verifier
        self.protected_paths = frozenset(p.rstrip("/") or "/" for p in protected_paths)
        self.methods = frozenset(m.upper() for m in methods)

    def _is_gated(self, environ: dict[str, Any]) -> bool:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        path = environ.get("PATH_INFO", "/").rstrip("/") or "/"
        return method in self.methods and path in self.protected_paths

    def __call__(
        self,
        environ: dict[str, Any],
        start_response: Callable[..., Any],
    ) -> Iterable[bytes]:
        if not self._is_gated(environ):
            return self.app(environ, start_response)

        try:
            body = _read_body(environ)
        except SkillVerificationError as e:
            result = VerificationResult.failure(e)
            environ[STATE_KEY] = SkillState(raw_body=b"", result=result)
            return self._error_response(start_response, str(e))
        headers = extract_wsgi_headers(environ)
        result = self.verifier.verify_sync(headers, body)
        environ[STATE_KEY] = SkillState(raw_body=body, result=result)

        if not result.verified:
            return self._error_response(
                start_response,
                result.error or "Request verification failed",
            )

        def custom_start_response(
            status: str,
            response_headers: list[tuple[str, str]],
            exc_info: Any = None,
        ) -> Any:
            decision = "bypassed" if result.bypassed else "verified"
            response_headers.append((DECISION_HEADER, decision))
            return start_response(status, response_headers, exc_info)

        return self.app(environ, custom_start_response)

    def _error_response(
        self,
        start_response: Callable[..., Any],
        error: str,
    ) -> Iterable[bytes]:
        """Return 400 error response."""
        body = error.encode("utf-8")
        start_response(
            "400 Bad Request",
            [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("Content-Length", str(len(body))),
            ],
        )
        return [body]
