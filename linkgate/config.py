import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# .env lives in the project root (parent of linkgate/)
ENV_PATH = Path(__file__).parent.parent / ".env"
DEV_DB_PATH = Path(__file__).parent.parent / "linkgate_dev.db"


@dataclass(frozen=True)
class Settings:
    secret_key: str
    algorithm: str = "HS256"
    host: str = "0.0.0.0"
    port: int = 4001
    environment: str = "dev"
    database_url: str = f"sqlite:///{DEV_DB_PATH}"
    db_timeout: float = 5.0
    public_base_url: str = "https://short.ly"
    bcrypt_rounds: int = 10
    code_length: int = 5
    code_attempts: int = 8
    log_level: str = "INFO"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def load_settings(env_file: Path | None = ENV_PATH) -> Settings:
    """Read configuration once at startup.

    A missing SECRET_KEY is fatal here so that no request ever runs without a
    signing key.
    """
    if env_file is not None:
        load_dotenv(env_file)

    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        raise RuntimeError("SECRET_KEY is not set")

    environment = os.getenv("ENVIRONMENT", "dev")
    # Dev: SQLite (zero config), Prod: whatever DATABASE_URL points at
    database_url = os.getenv("DATABASE_URL")
    if environment == "prod" and not database_url:
        raise RuntimeError("DATABASE_URL must be set in production")

    return Settings(
        secret_key=secret_key,
        algorithm=os.getenv("ALGORITHM", "HS256"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 4001)),
        environment=environment,
        database_url=database_url or f"sqlite:///{DEV_DB_PATH}",
        db_timeout=float(os.getenv("DB_TIMEOUT", 5)),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "https://short.ly").rstrip("/"),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", 10)),
        code_length=int(os.getenv("CODE_LENGTH", 5)),
        code_attempts=int(os.getenv("CODE_ATTEMPTS", 8)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
