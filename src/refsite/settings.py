"""Typed runtime settings for the site builder.

Settings come from ``REFSITE_*`` environment variables through
``pydantic_settings.BaseSettings``. Validation errors surface as
:class:`SettingsError` carrying an RFC 9457 Problem Details payload so the CLI
fails fast with a structured explanation.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Annotated, Final, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from refsite.errors import RefsiteError
from refsite.problem_details import (
    PROBLEM_BASE_URL,
    JsonValue,
    ProblemDetailsDict,
    ProblemDetailsParams,
    build_problem_details,
)

__all__: Final[list[str]] = [
    "RefsiteSettings",
    "SettingsError",
    "get_settings",
    "load_settings",
    "reset_settings_cache",
]


class SettingsError(RefsiteError):
    """Raised when runtime settings fail validation."""

    def __init__(
        self,
        message: str,
        *,
        problem: ProblemDetailsDict,
        errors: Sequence[dict[str, JsonValue]],
    ) -> None:
        super().__init__(message, problem=problem)
        self.errors: tuple[dict[str, JsonValue], ...] = tuple(errors)


class RefsiteSettings(BaseSettings):
    """Environment-driven defaults shared by the CLI and the link checker."""

    model_config = SettingsConfigDict(env_prefix="REFSITE_", case_sensitive=False, extra="ignore")

    docs_dir: Path = Field(default=Path("docs"), description="Documentation root directory")
    repo: str = Field(
        default="",
        description="GitHub repository override in 'owner/name' form; wins over git detection",
    )
    linkcheck_timeout: float = Field(
        default=10.0, gt=0, description="Per-probe timeout in seconds for external links"
    )
    linkcheck_workers: int = Field(
        default=8, ge=1, le=64, description="Upper bound on concurrent link probes"
    )
    linkcheck_ignore: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Regular expressions for URLs the link checker reports as skipped",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    @field_validator("linkcheck_ignore", mode="before")
    @classmethod
    def _normalise_ignore(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if isinstance(value, (list, tuple, set)):
            return tuple(str(part).strip() for part in value if str(part).strip())
        message = "linkcheck_ignore must be a comma-separated string or sequence"
        raise ValueError(message)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


_SETTINGS_CACHE: dict[str, RefsiteSettings] = {}


def load_settings[SettingsT: BaseSettings](
    settings_factory: Callable[[], SettingsT] | type[SettingsT],
) -> SettingsT:
    """Instantiate settings via ``settings_factory`` with structured error handling.

    Parameters
    ----------
    settings_factory : Callable[[], SettingsT] | type[SettingsT]
        Zero-argument callable returning a ``BaseSettings`` instance.

    Returns
    -------
    SettingsT
        Validated settings instance.

    Raises
    ------
    SettingsError
        Raised when validation fails; the pydantic errors are attached.
    """
    try:
        return settings_factory()
    except ValidationError as exc:
        name = getattr(settings_factory, "__name__", type(settings_factory).__name__)
        error_dicts = tuple(_as_error_dict(err) for err in exc.errors())
        problem = build_problem_details(
            ProblemDetailsParams(
                type=f"{PROBLEM_BASE_URL}/settings-invalid",
                title="Invalid runtime settings",
                status=500,
                detail="Failed to load REFSITE_* environment settings",
                instance=f"urn:refsite:settings:{name}:invalid",
                extensions={"errors": list(error_dicts), "settings_class": str(name)},
            )
        )
        message = "Failed to load runtime settings"
        raise SettingsError(message, problem=problem, errors=error_dicts) from exc


def get_settings() -> RefsiteSettings:
    """Return the cached process settings, loading them on first use."""
    cached = _SETTINGS_CACHE.get("default")
    if cached is None:
        cached = load_settings(RefsiteSettings)
        _SETTINGS_CACHE["default"] = cached
    return cached


def reset_settings_cache() -> None:
    _SETTINGS_CACHE.clear()


def _as_error_dict(error: object) -> dict[str, JsonValue]:
    if isinstance(error, dict):
        return {str(key): _to_jsonable(value) for key, value in error.items()}
    return {"detail": _to_jsonable(error)}


def _to_jsonable(value: object) -> JsonValue:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(key): _to_jsonable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, Path):
        return value.as_posix()
    return repr(value)
