import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db_name: str = "tarag"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 20160
    uploads_dir: str = "uploads"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    invite_code_max_attempts: int = 100
    max_room_image_bytes: int = 10 * 1024 * 1024


def load_settings() -> Settings:
    """Read the process configuration once, from the environment and `.env`."""
    load_dotenv()

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        raise RuntimeError("JWT_SECRET is not set")

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        jwt_secret=jwt_secret,
        mongo_url=os.getenv("MONGO_URL", "mongodb://localhost:27017"),
        mongo_db_name=os.getenv("MONGO_DB_NAME", "tarag"),
        jwt_algorithm=os.getenv("ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 20160)),
        uploads_dir=os.getenv("UPLOADS_DIR", "uploads"),
        cors_origins=origins or ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        invite_code_max_attempts=int(os.getenv("INVITE_CODE_MAX_ATTEMPTS", 100)),
        max_room_image_bytes=int(os.getenv("MAX_ROOM_IMAGE_BYTES", 10 * 1024 * 1024)),
    )
