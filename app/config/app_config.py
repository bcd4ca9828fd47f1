import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    APP_PORT: int = int(os.environ.get("APP_PORT", 8000))
    APP_HOST: str = os.environ.get("APP_HOST", "0.0.0.0")
    PORT_RETRIES: int = int(os.environ.get("PORT_RETRIES", 5))
    APP_ENV: str = os.environ.get("APP_ENV", "development")

    # Comma-separated list of browser origins allowed by CORS
    ALLOWED_ORIGINS: list = [
        origin.strip()
        for origin in os.environ.get("ALLOWED_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # Upper bound for every outbound call (paper sources, LLM, vector store)
    HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("HTTP_TIMEOUT_SECONDS", 10))

    RATE_LIMIT_MAX_REQUESTS: int = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", 100))
    RATE_LIMIT_WINDOW_SECONDS: int = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", 900))

    CACHE_ENABLED: bool = _as_bool(os.environ.get("CACHE_ENABLED", "true"))

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


settings = Settings()
