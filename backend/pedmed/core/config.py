from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Generative backend selection: "none", "azure", "openai" or "groq"
    GENERATIVE_PROVIDER: str = "none"
    GENERATIVE_TIMEOUT_SECONDS: float = 8.0
    GENERATIVE_MAX_TOKENS: int = 400
    GENERATIVE_TEMPERATURE: float = 0.2
    GENERATIVE_DAILY_LIMIT: Optional[int] = None

    # Azure OpenAI Configuration
    AZURE_OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_CHAT_DEPLOYMENT: str = "gpt-4o"
    AZURE_OPENAI_API_VERSION: str = "2024-02-15-preview"

    # OpenAI / OpenAI-compatible endpoints
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: Optional[str] = None
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.1-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"

    # Knowledge base
    KNOWLEDGE_BASE_CSV: str = "data/pedmedvnch.csv"
    CATALOG_REFRESH_SECONDS: int = 60 * 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "pretty"
    LOG_FILE: Optional[str] = None

    # Entity scoring
    ENTITY_EXACT_SCORE: int = 100
    ENTITY_REVERSE_SCORE: int = 95
    ENTITY_ALIAS_SCORE: int = 90
    ENTITY_FUZZY_SCORE: int = 80
    ENTITY_FUZZY_THRESHOLD: float = 0.7
    ENTITY_MIN_NAME_LENGTH: int = 3

    # Category scoring
    CATEGORY_EXACT_SCORE: int = 100
    CATEGORY_PARTIAL_SCORE: int = 70
    CATEGORY_EXACT_CAP: int = 150
    CATEGORY_PARTIAL_CAP: int = 120
    AUDIENCE_BONUS: int = 30
    SEVERITY_BONUS: int = 25
    CONDITION_BONUS: int = 20
    CONTRAINDICATION_BONUS: int = 40

    # Content refinement
    SNIPPET_LENGTH: int = 150
    SUMMARY_SNIPPETS: int = 3

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
