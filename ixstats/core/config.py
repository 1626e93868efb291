from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Cluster
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_TIMEOUT_MS: int = 10000
    DB_NAME: Optional[str] = None  # inventory a single database when set

    # Output
    OUTPUT_DIR: str = "./out"
    NO_COLOR: bool = False
    VERBOSE: bool = False
    LOG_LEVEL: str = "INFO"

    # Parallelism
    COLLECT_CONCURRENCY: int = 4
    RECREATE_CONCURRENCY: int = 4

    TOOL_VERSION: str = "0.1.0"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
