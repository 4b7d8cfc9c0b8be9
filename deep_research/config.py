from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Gemini (required), served through its OpenAI-compatible endpoint
    google_api_key: str = ""
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    default_model: str = "gemini-2.0-flash"
    llm_model: str = ""  # optional override of default_model

    # Firecrawl (required key, optional self-hosted base url)
    firecrawl_key: str = ""
    firecrawl_base_url: str = ""
    search_timeout_seconds: float = 30.0
    search_max_results: int = 5
    search_content_max_chars: int = 15000
    search_pause_seconds: float = 1.0

    # Bounded concurrency per external API
    search_max_parallel_requests: int = 2
    generation_max_parallel_requests: int = 2
    feedback_max_parallel_requests: int = 5

    # Retry with backoff
    retry_max: int = 3
    search_retry_base_delay: float = 2.0
    generation_retry_base_delay: float = 2.0
    feedback_retry_base_delay: float = 1.0

    # Orchestration
    feedback_questions: int = 3
    analysis_chunk_max_chars: int = 15000
    analysis_chunk_pause_seconds: float = 2.0
    default_breadth: int = 6
    default_depth: int = 3

    # App
    output_dir: str = "output"
    log_dir: str = "logs"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def firecrawl_api_url(self) -> str:
        return self.firecrawl_base_url.strip() or "https://api.firecrawl.dev"

    def missing_credentials(self) -> list[str]:
        missing: list[str] = []
        if not self.google_api_key.strip():
            missing.append("GOOGLE_API_KEY")
        if not self.firecrawl_key.strip():
            missing.append("FIRECRAWL_KEY")
        return missing


settings = Settings()
