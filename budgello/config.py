from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel
import os

# Load .env before reading the environment
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./budgello.db")
    sql_echo: bool = _env_bool("SQL_ECHO")
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    admin_username: Optional[str] = os.getenv("ADMIN_USERNAME")
    admin_password: Optional[str] = os.getenv("ADMIN_PASSWORD")
    cors_origin: str = os.getenv("CORS_ORIGIN", "http://localhost:5173")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


# Process-wide default settings
settings = Settings()
