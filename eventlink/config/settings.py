# eventlink/config/settings.py

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "development"
    DATABASE_URL: str = "sqlite:///./eventlink.db"
    LOG_LEVEL: str = "INFO"

    # group size policy
    TARGET_GROUP_SIZE: int = 6
    MIN_GROUP_SIZE: int = 3
    MAX_GROUP_SIZE: int = 10
    MERGE_CANDIDATE_MAX_SIZE: int = 6
    TOP_INTERESTS: int = 2

    POLL_INTERVAL_SECONDS: int = 60
    ENABLE_POLL_WORKER: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
