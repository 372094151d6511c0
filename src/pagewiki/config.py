"""Application configuration."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    db_host: str = "127.0.0.1"
    db_port: int = 3306
    db_name: str = "articles"
    db_user: str = ""
    db_password: str = ""
    db_driver: str = "mysql+pymysql"
    database_url: str | None = None

    placeholder_body: str = "temp"
    front_page: str = "FrontPage"
    app_title: str = "PageWiki"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PAGEWIKI_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def sqlalchemy_url(self) -> URL:
        """Return the database URL, preferring an explicit ``database_url``."""
        if self.database_url:
            return make_url(self.database_url)
        return URL.create(
            self.db_driver,
            username=self.db_user or None,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


settings = Settings()
