"""Exception hierarchy for the site builder.

Only structural misconfiguration is fatal. Parsers, link rewriters and the link
checker degrade instead of raising, so this module is deliberately small.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from refsite.problem_details import (
    PROBLEM_BASE_URL,
    ProblemDetailsParams,
    build_problem_details,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from refsite.problem_details import JsonValue, ProblemDetailsDict

__all__ = [
    "ConfigurationError",
    "RefsiteError",
    "configuration_problem",
]


class RefsiteError(RuntimeError):
    """Base exception raised by the site builder."""

    def __init__(self, message: str, *, problem: ProblemDetailsDict | None = None) -> None:
        super().__init__(message)
        self.problem = problem


class ConfigurationError(RefsiteError):
    """Raised when the site configuration is structurally invalid.

    The build raises this before writing any file.
    """


def configuration_problem(
    detail: str,
    *,
    field: str,
    extensions: Mapping[str, JsonValue] | None = None,
) -> ProblemDetailsDict:
    """Return the Problem Details payload attached to :class:`ConfigurationError`.

    Parameters
    ----------
    detail : str
        Human-readable explanation of the failure.
    field : str
        Dotted name of the offending configuration field.
    extensions : Mapping[str, JsonValue] | None, optional
        Additional members merged into the payload.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload with ``field`` recorded as an extension.
    """
    merged: dict[str, JsonValue] = {"field": field}
    if extensions:
        merged.update(extensions)
    return build_problem_details(
        ProblemDetailsParams(
            type=f"{PROBLEM_BASE_URL}/config-invalid",
            title="Invalid site configuration",
            status=422,
            detail=detail,
            instance=f"urn:refsite:config:{field}",
            extensions=merged,
        )
    )
