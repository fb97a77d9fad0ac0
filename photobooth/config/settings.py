# photobooth/config/settings.py
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Photobooth Strip Service"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Auth
    BASIC_AUTH_USERNAME: str = "admin"
    BASIC_AUTH_PASSWORD: str = "secret"

    # Layouts
    DEFAULT_LAYOUT_ID: int = 1
    PIXELS_PER_INCH: int = 96

    # Export (supersampling)
    EXPORT_SCALE: float = 3.5
    MAX_EXPORT_SCALE: float = 4.0
    EXPORT_FORMAT: str = "png"
    JPEG_QUALITY: int = 92
    EXPORT_DIR: Optional[str] = None
    EXPORT_SETTLE_TIMEOUT: float = 30.0

    # Sticker handles (layout pixels)
    HANDLE_SIZE: int = 10
    ROTATE_HANDLE_OFFSET: int = 20
    DELETE_HANDLE_OFFSET: int = 20
    DELETE_HANDLE_RADIUS: int = 10
    MIN_STICKER_SIZE: int = 20
    DEFAULT_STICKER_WIDTH: int = 100
    DUPLICATE_OFFSET: int = 10
    UNDO_LIMIT: int = 50

    # Sessions idle longer than this are dropped
    SESSION_TTL_SECONDS: int = 3600

    # Rendering
    PLACEHOLDER_COLOR: str = "#999999"
    DEFAULT_FRAME_COLOR: str = "#000000"
    DATE_FORMAT: str = "%d.%m.%Y"
    DATE_FONT_SIZE: int = 16
    DATE_POSITION_X: float = 0.93
    DATE_POSITION_Y: float = 0.96
    FONT_PATH: Optional[str] = None

    # Decoding
    MAX_DECODE_SIDE: int = 4096
    REQUEST_TIMEOUT: int = 30

    # Env
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Cloudinary (either use CLOUDINARY_URL or the 3 fields below)
    CLOUDINARY_URL: Optional[str] = None
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "photobooth-strips"

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(self.CLOUDINARY_URL or (self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY))

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
