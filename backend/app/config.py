# backend/app/config.py

from pydantic import BaseModel, Field
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseModel):
    # LLM config
    LLM_PROVIDER: str = Field(default=os.getenv("LLM_PROVIDER", "openai"))
    LLM_API_KEY: str = Field(default=os.getenv("LLM_API_KEY", ""))
    LLM_BASE_URL: str = Field(default=os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"))
    LLM_MODEL_NAME: str = Field(default=os.getenv("LLM_MODEL_NAME", "gpt-4o-mini"))
    LLM_TEMPERATURE: float = Field(default=float(os.getenv("LLM_TEMPERATURE", "0.7")))
    LLM_MAX_TOKENS: int = Field(default=int(os.getenv("LLM_MAX_TOKENS", "2000")))
    # Request timeout in seconds for a single completion call
    LLM_REQUEST_TIMEOUT: int = Field(default=int(os.getenv("LLM_REQUEST_TIMEOUT", "120")))

    # Warmup
    WARMUP_ENABLED: bool = Field(default=os.getenv("WARMUP_ENABLED", "false").lower() == "true")
    WARMUP_PROMPT: str = Field(default=os.getenv("WARMUP_PROMPT", "Warm up. Reply with OK."))

    # Celery/Redis
    REDIS_URL: str = Field(default=os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    CELERY_SOFT_TIME_LIMIT: int = Field(default=int(os.getenv("CELERY_SOFT_TIME_LIMIT", "300")))  # 5 min
    CELERY_HARD_TIME_LIMIT: int = Field(default=int(os.getenv("CELERY_HARD_TIME_LIMIT", "360")))  # soft + buffer
    # A row still 'processing' after this long has no live attempt behind it
    STALE_PROCESSING_SECONDS: int = Field(default=int(os.getenv("STALE_PROCESSING_SECONDS", os.getenv("CELERY_HARD_TIME_LIMIT", "360"))))
    # 0 disables the periodic drain of the queue
    QUEUE_POLL_SECONDS: float = Field(default=float(os.getenv("QUEUE_POLL_SECONDS", "0")))

    # Job record store
    DATABASE_URL: str = Field(default=os.getenv("DATABASE_URL", "sqlite:///./cv_jobs.db"))
    DEFAULT_MAX_RETRIES: int = Field(default=int(os.getenv("DEFAULT_MAX_RETRIES", "3")))
    STORE_CAS_ATTEMPTS: int = Field(default=int(os.getenv("STORE_CAS_ATTEMPTS", "5")))

    # Blob store: "local" reads from BLOB_ROOT, "http" from an object storage endpoint
    BLOB_BACKEND: str = Field(default=os.getenv("BLOB_BACKEND", "local"))
    BLOB_ROOT: str = Field(default=os.getenv("BLOB_ROOT", "./blobs"))
    BLOB_BASE_URL: str = Field(default=os.getenv("BLOB_BASE_URL", ""))
    BLOB_BUCKET: str = Field(default=os.getenv("BLOB_BUCKET", "resumes"))
    BLOB_API_KEY: str = Field(default=os.getenv("BLOB_API_KEY", ""))
    BLOB_FETCH_TIMEOUT: float = Field(default=float(os.getenv("BLOB_FETCH_TIMEOUT", "30")))

    # Extraction / OCR
    MIN_TEXT_LENGTH: int = Field(default=int(os.getenv("MIN_TEXT_LENGTH", "100")))
    MAX_EXTRACTED_CHARS: int = Field(default=int(os.getenv("MAX_EXTRACTED_CHARS", "50000")))
    OCR_LANG: str = Field(default=os.getenv("OCR_LANG", "eng"))
    OCR_DPI: int = Field(default=int(os.getenv("OCR_DPI", "200")))
    OCR_MAX_PAGES: int = Field(default=int(os.getenv("OCR_MAX_PAGES", "10")))
    OCR_TIMEOUT: float = Field(default=float(os.getenv("OCR_TIMEOUT", "60")))  # per page

    # HTTP
    BACKEND_CORS_ORIGINS: str = Field(default=os.getenv("BACKEND_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"))


    def full_model_id(self) -> str:
        """
        Return provider-prefixed model id for LiteLLM, e.g.:
        - 'openai/gpt-4o-mini'
        - 'ollama/llama3.2'
        - 'gemini/gemini-2.5-flash'
        """
        provider = self.LLM_PROVIDER.strip().lower()
        # If already prefixed, keep as is
        if "/" in self.LLM_MODEL_NAME:
            return self.LLM_MODEL_NAME
        return f"{provider}/{self.LLM_MODEL_NAME}"


settings = Settings()
