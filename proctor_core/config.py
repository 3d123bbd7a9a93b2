# proctor_core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    MONGODB_URI: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "proctoring_db"
    PERSISTENCE_ENABLED: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # suppression windows, milliseconds
    FOCUS_LOST_WINDOW_MS: int = 10_000
    CANDIDATE_ABSENT_WINDOW_MS: int = 15_000
    MULTIPLE_FACES_WINDOW_MS: int = 10_000
    UNAUTHORIZED_ITEM_WINDOW_MS: int = 30_000

    # how far a client frame_time may run ahead of the server clock
    MAX_CLOCK_SKEW_MS: int = 5_000
    # ended sessions kept in memory; older ones are read back from MongoDB
    MAX_ENDED_SESSIONS: int = 100

    RESTRICTED_ITEMS: List[str] = ["phone", "book", "laptop", "tablet"]
    OBJECT_CONFIDENCE_THRESHOLD: float = 0.6
    LOOK_AWAY_X_THRESHOLD: float = 0.25

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
