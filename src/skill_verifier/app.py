"""
FastAPI application serving the skill endpoint.

Routes:
    GET  /api/skill   - Liveness probe, always 200 with an empty body
    POST /api/skill   - Signed skill request, gated by the verification middleware
    GET  /Sounds/...  - Static audio clips referenced by SSML responses
"""

from __future__ import annotations

import logging
import random

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from .config import SkillSettings
from .errors import ApplicationMismatchError, SkillVerificationError
from .intents import IntentDispatcher
from .middleware.asgi import SkillVerificationASGIMiddleware
from .protocol import SkillRequest
from .timestamp import check_request_timestamp
from .verifier import RequestVerifier

logger = logging.getLogger(__name__)


async def verification_error_handler(request: Request, exc: SkillVerificationError) -> Response:
    logger.error("Rejecting request [%s]: %s", exc.reason, exc)
    return PlainTextResponse(str(exc), status_code=400)


async def server_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": 500,
            "message": "A server error occurred.",
            "detailedMessage": str(exc),
        },
    )


def create_app(
    settings: SkillSettings | None = None,
    *,
    verifier: RequestVerifier | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """
    Build the skill application.

    Args:
        settings: Skill configuration. Default: loaded from the environment
        verifier: Request verifier. Default: built from ``settings``
        rng: Random generator for response selection. Default: seeded from
            ``settings.random_seed`` (or the OS when unset)
    """
    settings = settings or SkillSettings.from_env()
    verifier = verifier or RequestVerifier.from_settings(settings)
    dispatcher = IntentDispatcher(
        rng=rng or random.Random(settings.random_seed),
        skill_name=settings.skill_name,
        sound_url_prefix=settings.sound_url_prefix,
    )

    if settings.bypass_enabled:
        logger.warning(
            "Request verification is DISABLED (environment=%s)", settings.environment
        )

    app = FastAPI(
        title="Skill Verifier",
        description="Voice skill backend with platform signature verification",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    app.add_middleware(
        SkillVerificationASGIMiddleware,
        verifier=verifier,
        protected_paths=settings.protected_paths,
    )
    app.add_exception_handler(SkillVerificationError, verification_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    @app.get(settings.api_path)
    async def hello():
        """Liveness probe."""
        return Response(status_code=200)

    @app.post(settings.api_path)
    async def skill(request: Request):
        """Answer a verified skill request."""
        raw_body = getattr(request.state, "raw_body", None)
        if raw_body is None:
            raw_body = await request.body()

        skill_request = SkillRequest.parse(raw_body)

        if skill_request.application_id != settings.application_id:
            raise ApplicationMismatchError("Request ApplicationId is incorrect")

        check_request_timestamp(
            skill_request.request.timestamp,
            min_skew_s=settings.timestamp_min_skew_s,
            max_age_s=settings.timestamp_max_age_s,
        )

        base_url = f"https://{request.url.netloc}"
        response = dispatcher.dispatch(skill_request, base_url)
        if response is None:
            return Response(status_code=204)
        return JSONResponse(response.to_json())

    app.mount(
        settings.sound_url_prefix,
        StaticFiles(directory=settings.sound_dir, check_dir=False),
        name="sounds",
    )

    return app
