"""Configuration for Stitch Log, read from the environment and ``.env``."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration."""

    # Server
    PORT: int = int(os.getenv("PORT", "7675"))
    DEBUG: bool = _env_bool("DEBUG")

    # Database (sync or async URL, drivers are filled in by stitchlog.database)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./stitchlog.db")

    # Blob storage for photos
    MEDIA_ROOT: Path = Path(os.getenv("MEDIA_ROOT", "./media"))
    MEDIA_URL: str = os.getenv("MEDIA_URL", "/media").rstrip("/")
    PHOTO_BUCKET: str = os.getenv("PHOTO_BUCKET", "project-photos")
    MAX_UPLOAD_MB: int = int(os.getenv("MAX_UPLOAD_MB", "20"))

    # Project statuses: a preset name or "key:Label:color,..."
    STATUS_SET: str = os.getenv("STATUS_SET", "board")

    # Ravelry pattern catalog
    RAVELRY_API_BASE: str = os.getenv(
        "RAVELRY_API_BASE", "https://api.ravelry.com"
    ).rstrip("/")
    RAVELRY_API_USERNAME: str | None = os.getenv("RAVELRY_API_USERNAME") or None
    RAVELRY_API_PASSWORD: str | None = os.getenv("RAVELRY_API_PASSWORD") or None
    CATALOG_TIMEOUT: float = float(os.getenv("CATALOG_TIMEOUT", "15"))

    @classmethod
    def ensure_media_dirs(cls) -> None:
        """Create the media root and the photo bucket below it."""
        (cls.MEDIA_ROOT / cls.PHOTO_BUCKET).mkdir(parents=True, exist_ok=True)


config = Config()
