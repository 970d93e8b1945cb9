from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    mw_api_url: AnyHttpUrl
    mw_http_timeout: float = Field(default=15.0, gt=0)
    mw_user_agent: str = "mw-transcribe/1.0"

    # Rows requested per continuation step of a bulk listing
    listing_page_size: int = Field(default=100, ge=1, le=500)

    # Comma separated MediaWiki groups allowed to export transcriptions
    export_groups: str = "sysop,bureaucrat"

    # JSON file backing the in-memory reference adapter
    documents_file: Optional[str] = None

    session_cookie_name: str = "mw_transcribe_session"
    max_sessions: int = Field(default=1000, ge=1)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def export_group_list(self) -> List[str]:
        return [g.strip() for g in self.export_groups.split(",") if g.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
