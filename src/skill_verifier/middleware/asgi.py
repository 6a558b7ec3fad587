"""
ASGI middleware for skill request verification (FastAPI/Starlette).
"""

from typing import Any, Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from ..models import SkillState
from ..verifier import RequestVerifier

DECISION_HEADER = "X-Skill-Verification"


class SkillVerificationASGIMiddleware(BaseHTTPMiddleware):
    """
    ASGI middleware that gates skill requests on the platform signature.

    The body is read once and kept on ``request.state.raw_body``; handlers
    must parse that buffer. The result is attached to ``request.state.skill``
    as a SkillState.

    Args:
        app: ASGI application
        verifier: RequestVerifier used for every gated request
        protected_paths: Paths whose requests are verified
        methods: HTTP methods that are verified. Default: POST only

    Example (FastAPI):
        >>> app = FastAPI()
        >>> app.add_middleware(
        ...     SkillVerificationASGIMiddleware,
        ...     verifier=RequestVerifier.from_settings(settings),
        ...     protected_paths=("/api/skill",),
        ... )
    """

    def __init__(
        self,
        app: Any,
        verifier: RequestVerifier,
        protected_paths: Iterable[str] = ("/api/skill",),
        methods: Iterable[str] = ("POST",),
    ):
        super().__init__(app)
        self.verifier = verifier
        self.protected_paths = frozenset(p.rstrip("/") or "/" for p in protected_paths)
        self.methods = frozenset(m.upper() for m in methods)

    def _is_gated(self, request: Request) -> bool:
        path = request.url.path.rstrip("/") or "/"
        return request.method in self.methods and path in self.protected_paths

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if not self._is_gated(request):
            return await call_next(request)

        body = await request.body()
        request.state.raw_body = body

        result = await self.verifier.verify(request.headers, body)
        request.state.skill = SkillState(raw_body=body, result=result)

        if not result.verified:
            return PlainTextResponse(
                result.error or "Request verification failed",
                status_code=400,
            )

        response = await call_next(request)
        response.headers[DECISION_HEADER] = "bypassed" if result.bypassed else "verified"
        return response
