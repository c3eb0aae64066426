from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "env_prefix": "",
        "case_sensitive": False,
    }

    # Marketplace API
    api_base_url: str = "http://localhost:8000/api"
    request_timeout_seconds: float = 30.0

    # Collections
    default_page_size: int = 10

    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""


settings = Settings()
