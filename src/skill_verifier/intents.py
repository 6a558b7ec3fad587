"""
Intent dispatch table and canned responses.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from .protocol import OutputSpeech, SkillRequest, SkillResponse

logger = logging.getLogger(__name__)

SOUND_FILES = (
    "bopx.mp3",
    "bosdibodiboppx.mp3",
    "r2x.mp3",
    "r3x.mp3",
    "r4x.mp3",
    "whosaidthatx.mp3",
)

CARD_CONTENT = "Awwwww yeah!"


class IntentDispatcher:
    """
    Maps request types and intent names to canned responses.

    Args:
        rng: Random generator used to pick sound clips. Inject a seeded
            ``random.Random`` for deterministic output
        skill_name: Title shown on response cards
        sound_url_prefix: URL prefix the sound files are served under
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        skill_name: str = "Hair Band",
        sound_url_prefix: str = "/Sounds",
    ):
        self.rng = rng or random.Random()
        self.skill_name = skill_name
        self.sound_url_prefix = "/" + sound_url_prefix.strip("/")

        self._request_handlers: dict[str, Callable[[SkillRequest, str], SkillResponse | None]] = {
            "LaunchRequest": self.launch,
            "IntentRequest": self.intent,
            "SessionEndedRequest": self.session_ended,
        }
        self._intent_handlers: dict[str, Callable[[SkillRequest, str], SkillResponse]] = {
            "SayIntent": self.say,
            "AMAZON.HelpIntent": self.help,
            "AMAZON.StopIntent": self.stop,
            "AMAZON.CancelIntent": self.stop,
        }

    def dispatch(self, request: SkillRequest, base_url: str) -> SkillResponse | None:
        """
        Build the response for a request, or None when nothing should be said.

        Args:
            request: Parsed skill request
            base_url: Public ``https://host`` the sound files are served from
        """
        handler = self._request_handlers.get(request.request.type)
        if handler is None:
            logger.warning("Unhandled request type %s", request.request.type)
            return None
        return handler(request, base_url)

    def random_sound(self) -> str:
        return self.rng.choice(SOUND_FILES)

    def launch(self, request: SkillRequest, base_url: str) -> SkillResponse:
        response = SkillResponse.plain_text(
            "Welcome to Hair Band. You can tell me to melt your face.",
            title=self.skill_name,
        )
        response.response.card.content = CARD_CONTENT
        return response.with_reprompt("Please tell me to say something.")

    def intent(self, request: SkillRequest, base_url: str) -> SkillResponse | None:
        intent = request.request.intent
        if intent is None:
            logger.warning("IntentRequest without an intent")
            return None
        handler = self._intent_handlers.get(intent.name)
        if handler is None:
            logger.warning("Unhandled intent %s", intent.name)
            return None
        logger.info("Dispatching intent %s", intent.name)
        return handler(request, base_url)

    def session_ended(self, request: SkillRequest, base_url: str) -> None:
        return None

    def say(self, request: SkillRequest, base_url: str) -> SkillResponse:
        src = f"{base_url.rstrip('/')}{self.sound_url_prefix}/{self.random_sound()}"
        response = SkillResponse.plain_text("", title=self.skill_name)
        response.response.output_speech = OutputSpeech(
            type="SSML",
            ssml=f'<speak> <audio src="{src}"></audio> </speak>',
        )
        response.response.card.content = CARD_CONTENT
        return response

    def help(self, request: SkillRequest, base_url: str) -> SkillResponse:
        response = SkillResponse.plain_text(
            "The Hair Band skill is here to melt your face. Try asking it to melt "
            "your face, to sing, or to say something. What would you like to do?",
            title=self.skill_name,
        )
        response.response.card.content = CARD_CONTENT
        return response.with_reprompt("What would you like me to do?")

    def stop(self, request: SkillRequest, base_url: str) -> SkillResponse:
        return SkillResponse.plain_text("", title=self.skill_name)
