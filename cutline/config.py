from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Cutline Render Backend"
    app_version: str = "0.1.0"
    environment: Literal["development", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # FFmpeg binaries
    # Development uses whatever is on PATH; packaged builds ship their own
    # binaries under bin_dir/<platform>/.
    use_system_binaries: bool = True
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    bin_dir: str = "bin"

    # Working directory (fragments live in <workdir>/master)
    workdir: str = "/tmp/cutline-wd"
    master_output_name: str = "masterOutput"

    # Default render scheme
    default_scheme_size: str = "1280x720"
    default_scheme_format: str = ".mp4"
    default_scheme_codec: str = "libx264"
    default_scheme_bitrate: str = "1000k"
    default_scheme_fps: float = 24
    default_scheme_pad: bool = True

    # Preview
    preview_port: int = Field(4000, validation_alias=AliasChoices("preview_port", "pv_port"))
    preview_duration_s: float = 10.0
    preview_size: str = "?x480"
    preview_codec: str = "libx264"
    preview_chunk_size: int = 64 * 1024
    preview_subdir: str = ""  # /preview/{file} is resolved under <workdir>/<preview_subdir>

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from a comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
