import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    openai_api_key: str = os.environ.get("OPENAI_API_KEY", "")
    model_name: str = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    temperature: float = float(os.environ.get("LLM_TEMPERATURE", 0.3))
    # "llm" for chat-model summaries, "extractive" for the offline sentence scorer
    summarizer_strategy: str = os.environ.get("SUMMARIZER_STRATEGY", "llm").lower()
    embeddings_model: str = os.environ.get("EMBEDDINGS_MODEL", "all-MiniLM-L6-v2")

settings = Settings()


class MissingAPIKeyError(RuntimeError):
    """Raised at startup when OPENAI_API_KEY is not configured."""


def require_api_key() -> str:
    if not settings.openai_api_key:
        raise MissingAPIKeyError("OPENAI_API_KEY is not set; refusing to start.")
    return settings.openai_api_key
