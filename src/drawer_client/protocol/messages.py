from __future__ import annotations

from typing import Annotated, Literal, Optional, TypeAlias, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .geometry import Circle, Line, Point, Primitive, Rectangle

# Poll RPC uses the proto3 JSON mapping:
# - camelCase field names
# - int64 may be sent as a JSON string ("5"); lax int parsing accepts both
# - a Drawing is a one-of: exactly one of line/rectangle/circle is present


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PollRequest(_Wire):
    scene_id: str
    authenticator: str = ""
    after_timestamp: int = 0


class Drawing(_Wire):
    line: Optional[Line] = None
    rectangle: Optional[Rectangle] = None
    circle: Optional[Circle] = None

    @model_validator(mode="after")
    def _at_most_one(self) -> "Drawing":
        present = [v for v in (self.line, self.rectangle, self.circle) if v is not None]
        if len(present) > 1:
            raise ValueError("drawing sets more than one of line/rectangle/circle")
        return self

    def primitive(self) -> Primitive | None:
        """Return the active variant, or None for a variant this client does not know."""
        return self.line or self.rectangle or self.circle


class PollResponse(_Wire):
    drawings: list[Drawing] = Field(default_factory=list)
    last_timestamp: int = 0


# Push channel (JSON text frames on /api/v1/<sceneId>/listen)


class LineContent(BaseModel):
    begin: Point
    end: Point


class ClearMessage(BaseModel):
    type: Literal["clear"]


class LineMessage(BaseModel):
    type: Literal["line"]
    id: str
    content: LineContent

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: object) -> object:
        # the scene server serializes object ids as int64
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_line(self) -> Line:
        return Line(from_=self.content.begin, to=self.content.end)


PushMessage: TypeAlias = Annotated[Union[ClearMessage, LineMessage], Field(discriminator="type")]

push_message_adapter: TypeAdapter[PushMessage] = TypeAdapter(PushMessage)
