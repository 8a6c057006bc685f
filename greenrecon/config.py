"""greenrecon configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "GREENRECON_", "env_file": ".env"}

    # Generative AI
    google_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    ai_timeout: float = 60.0

    # Document store
    database_path: str = "greenrecon.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    # Branding used in prompts, emails and exports
    company_name: str = "Big Marble Farms"


settings = Settings()
