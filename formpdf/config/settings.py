from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    output_dir: Path = Path("generated")
    upload_root: Path = Path(".")
    log_level: str = "INFO"
    preview_zoom: float = 1.25

    model_config = SettingsConfigDict(env_prefix="FORMPDF_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
