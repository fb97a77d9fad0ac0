# photobooth/domain/models.py
import uuid
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Rectangle(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def scaled(self, scale: float) -> "Rectangle":
        # Edges are rounded, not sizes, so adjacent slots never overlap or gap.
        x1, y1 = round(self.x * scale), round(self.y * scale)
        x2 = round((self.x + self.width) * scale)
        y2 = round((self.y + self.height) * scale)
        return Rectangle(x=x1, y=y1, width=max(1, x2 - x1), height=max(1, y2 - y1))


class CanvasSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def scaled(self, scale: float) -> Tuple[int, int]:
        return (max(1, round(self.width * scale)), max(1, round(self.height * scale)))


class Padding(BaseModel):
    model_config = ConfigDict(frozen=True)

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


Arrangement = Literal["vertical", "horizontal", "grid"]


class Layout(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    canvas_size: CanvasSize
    rectangles: Tuple[Rectangle, ...]
    arrangement: Arrangement = "vertical"

    @property
    def max_photos(self) -> int:
        return len(self.rectangles)


class Photo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    url: str


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Gradient(BaseModel):
    """Two-or-more stop linear gradient.

    ``start`` and ``end`` are percentages (0-100) of the canvas size, so the
    same preset fits every layout.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    stops: Tuple[Tuple[float, str], ...]
    start: Point = Point(x=0, y=0)
    end: Point = Point(x=100, y=100)
