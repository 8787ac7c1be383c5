from __future__ import annotations

from typing import Annotated, Literal, TypeAlias, Union

from pydantic import BaseModel, ConfigDict, Field

# Normalized coordinate space:
# - x,y conventionally in [-1,1], y-up
# - the renderer owns the mapping to device pixels
# - proto3 JSON omits zero-valued fields, hence the 0.0 defaults


class _Shape(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Point(_Shape):
    x: float = 0.0
    y: float = 0.0


class Line(_Shape):
    kind: Literal["line"] = "line"
    from_: Point = Field(alias="from")
    to: Point


class Rectangle(_Shape):
    kind: Literal["rectangle"] = "rectangle"
    lower_left: Point = Field(alias="lowerLeft")
    upper_right: Point = Field(alias="upperRight")


class Circle(_Shape):
    kind: Literal["circle"] = "circle"
    center: Point
    radius: float = 0.0


Primitive: TypeAlias = Annotated[Union[Line, Rectangle, Circle], Field(discriminator="kind")]


class DrawingObject(_Shape):
    """A primitive addressed by an id that is unique within one scene."""

    id: str
    primitive: Primitive
