from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database
    # Plain string so sqlite:// and postgresql+psycopg:// URLs are both accepted
    DATABASE_URL: str = "sqlite:///./prereq.db"

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # profile provider
    PROFILE_PROVIDER: str = "fresh_linkedin"  # or "proxycurl"
    RAPIDAPI_KEY: str | None = None
    RAPIDAPI_HOST: str = "fresh-linkedin-scraper-api.p.rapidapi.com"
    PROXYCURL_API_KEY: str | None = None
    PROXYCURL_BASE_URL: str = "https://nubela.co/proxycurl/api/v2"
    PROFILE_TIMEOUT_SECONDS: float = 30.0
    PROFILE_SECONDARY_TIMEOUT_SECONDS: float = 15.0
    PROFILE_SECONDARY_ITEM_LIMIT: int = 5

    # llm: Claude primary, Groq fallback
    ANTHROPIC_API_KEY: str | None = None
    PRIMARY_LLM_MODEL: str = "claude-sonnet-4-5"
    GROQ_API_KEY: str | None = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    FALLBACK_LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_OUTPUT_TOKENS: int = 4096
    LLM_TEMPERATURE: float = 0.4
    LLM_PRICEBOOK_JSON: str | None = None

    # plans / usage
    PLAN_LIMITS: dict[str, int] = {"free": 5, "starter": 30, "pro": 100}
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True
        frozen = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
