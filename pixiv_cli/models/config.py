"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from pixiv_cli.media.sink import ConflictPolicy
from pixiv_cli.utils.path import DEFAULT_ROOT_FOLDER, sanitize_root_folder

RANGE_MODES = ("all", "prompt", "custom")
MAX_RANGE_BOUND = 9999


def _clamp(value: object, low: int, high: int, fallback: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    return min(high, max(low, number))


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Session
    session_cookie: str = ""

    # Download Settings
    output_dir: str = "."
    root_folder_name: str = DEFAULT_ROOT_FOLDER
    retry_enabled: bool = True
    anti_theft_suffix_enabled: bool = True
    conflict_policy: ConflictPolicy = ConflictPolicy.UNIQUIFY

    # Range Selection
    range_mode: str = "all"
    custom_range_start: int = 1
    custom_range_end: int = 1

    # Internal fields not loaded from INI file
    config_path: str = Field(".", repr=False)
    source_urls: list[str] = Field(default_factory=list, repr=False)

    @field_validator("root_folder_name", mode="before")
    @classmethod
    def validate_root_folder(cls, v: object) -> str:
        """Reduces the root folder to a single safe path segment."""
        return sanitize_root_folder(None if v is None else str(v))

    @field_validator("range_mode", mode="before")
    @classmethod
    def validate_range_mode(cls, v: object) -> str:
        value = str(v or "all").strip().lower()
        if value not in RANGE_MODES:
            raise ValueError(f"Range mode must be one of {', '.join(RANGE_MODES)}.")
        return value

    @field_validator("custom_range_start", mode="before")
    @classmethod
    def clamp_range_start(cls, v: object) -> int:
        return _clamp(v, 1, MAX_RANGE_BOUND, 1)

    @field_validator("custom_range_end", mode="before")
    @classmethod
    def clamp_range_end(cls, v: object, info: ValidationInfo) -> int:
        """Keeps the custom range ordered: the end is raised to at least the start."""
        start = info.data.get("custom_range_start", 1)
        return _clamp(v, start, MAX_RANGE_BOUND, start)

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Output directory cannot be empty.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "source_urls"}
        return {key for key in cls.model_fields if key not in internal_fields}
