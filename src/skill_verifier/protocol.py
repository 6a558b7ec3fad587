"""
Skill request/response envelope.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import MalformedRequestError

PROTOCOL_VERSION = "1.0"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request


class Application(CamelModel):
    application_id: str


class Session(CamelModel):
    application: Application
    session_id: str | None = None
    new: bool | None = None


class Slot(CamelModel):
    name: str
    value: str | None = None


class Intent(CamelModel):
    name: str
    slots: dict[str, Slot] | None = None


class RequestBody(CamelModel):
    type: str
    timestamp: datetime
    request_id: str | None = None
    locale: str | None = None
    intent: Intent | None = None


class SkillRequest(CamelModel):
    session: Session
    request: RequestBody
    version: str | None = None

    @property
    def application_id(self) -> str:
        return self.session.application.application_id

    @classmethod
    def parse(cls, raw_body: bytes) -> "SkillRequest":
        """
        Parse the raw request body.

        Raises:
            MalformedRequestError: If the body is not a valid skill envelope
        """
        try:
            return cls.model_validate_json(raw_body)
        except ValidationError as e:
            raise MalformedRequestError(
                f"Request body is not a valid skill request: {e.error_count()} error(s)"
            ) from e


# Response


class OutputSpeech(CamelModel):
    type: str = "PlainText"
    text: str | None = None
    ssml: str | None = None


class Card(CamelModel):
    type: str = "Simple"
    title: str | None = None
    content: str | None = None


class Reprompt(CamelModel):
    output_speech: OutputSpeech = Field(default_factory=OutputSpeech)


class ResponseBody(CamelModel):
    output_speech: OutputSpeech = Field(default_factory=OutputSpeech)
    card: Card = Field(default_factory=Card)
    reprompt: Reprompt | None = None
    should_end_session: bool = True


class SkillResponse(CamelModel):
    version: str = PROTOCOL_VERSION
    response: ResponseBody = Field(default_factory=ResponseBody)

    @classmethod
    def plain_text(cls, text: str, title: str | None = None) -> "SkillResponse":
        return cls(
            response=ResponseBody(
                output_speech=OutputSpeech(type="PlainText", text=text),
                card=Card(title=title),
            )
        )

    def with_reprompt(self, text: str) -> "SkillResponse":
        """Keep the session open and ask again with ``text``."""
        self.response.reprompt = Reprompt(
            output_speech=OutputSpeech(type="PlainText", text=text)
        )
        self.response.should_end_session = False
        return self

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
