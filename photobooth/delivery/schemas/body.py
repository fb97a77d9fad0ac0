from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from photobooth.config.settings import settings

class SessionCreate(BaseModel):
    layout_id: Optional[int] = None
    date_text: Optional[str] = None      # defaults to today's date

class LayoutChange(BaseModel):
    layout_id: int

class PhotoIn(BaseModel):
    url: str                             # URL, path, data URL or base64
    id: Optional[str] = None

class PhotoList(BaseModel):
    photos: List[PhotoIn] = Field(default_factory=list)

class BackgroundIn(BaseModel):
    # Either a CSS colour or a gradient preset id; the image is drawn over it
    color: Optional[str] = None
    gradient_id: Optional[str] = None
    image: Optional[str] = None

class ForegroundIn(BaseModel):
    image: Optional[str] = None

class StickerIn(BaseModel):
    image: str
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = Field(default=None, gt=0)

class PointerEvent(BaseModel):
    type: Literal["down", "move", "up", "leave"]
    x: float = 0.0
    y: float = 0.0

class ExportRequest(BaseModel):
    scale: Optional[float] = Field(default=None, gt=0)
    format: Literal["png", "jpeg", "jpg"] = settings.EXPORT_FORMAT
    save: bool = False                   # also write to EXPORT_DIR
    upload: bool = False                 # also upload to Cloudinary
