from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

from src.pipeline_config import ChunkFailurePolicy


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    Provider keys default to empty; each pipeline component checks the keys
    it needs when it is constructed.
    """

    # API Keys
    anthropic_api_key: str = ""
    youtube_transcript_api_key: str = ""
    tavily_api_key: str = ""  # Optional: speaker search, empty context if absent
    resend_api_key: str = ""  # Optional: completion e-mails skipped if absent

    # Supabase (service role key: the pipeline writes outside of any user session)
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    app_url: str = "http://localhost:3000"
    email_from: str = "Podcast Summary <onboarding@resend.dev>"
    llm_model: str = "claude-sonnet-4-20250514"
    transcript_api_url: str = "https://api.youtube-transcript.io/v1/transcript"
    http_timeout_seconds: float = 60.0
    job_timeout_seconds: float = 300.0

    # Chunking / summarization knobs
    clean_max_tokens_per_chunk: int = 30000
    clean_overlap_tokens: int = 500
    summary_chunked_threshold: int = 80000
    summary_chunk_tokens: int = 40000
    summary_overlap_tokens: int = 500
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 2000
    chunk_failure_policy: ChunkFailurePolicy = ChunkFailurePolicy.FAIL_FAST

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]
