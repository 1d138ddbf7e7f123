import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    db_name: str = "contacts.db"
    db_timeout: float = 5.0
    transaction_retries: int = 1
    environment: str = "production"
    log_level: str = "INFO"
    cors_origins: tuple = ("*",)
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        origins: List[str] = [
            o.strip() for o in _env("CORS_ORIGIN", "*").split(",") if o.strip()
        ]
        return cls(
            db_name=_env("DB_NAME", cls.db_name),
            db_timeout=float(_env("DB_TIMEOUT", str(cls.db_timeout))),
            transaction_retries=int(_env("TRANSACTION_RETRIES", str(cls.transaction_retries))),
            environment=_env("APP_ENV", cls.environment).lower(),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            cors_origins=tuple(origins) or ("*",),
            host=_env("HOST", cls.host),
            port=int(_env("PORT", str(cls.port))),
        )


settings = Settings.from_env()
