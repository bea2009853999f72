from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CONVENE_", extra="ignore")

    db_url: str = "sqlite:///convene.db"

    log_level: str = "INFO"
    log_json: bool = False

    # lenient: read-modify-write of the whole set (last write wins)
    # strict: one conditional insert/delete per member
    membership_strictness: Literal["lenient", "strict"] = "lenient"

    allow_reinvite_after_decline: bool = False
    allow_changes_when_canceled: bool = False


settings = Settings()
