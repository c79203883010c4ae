"""Problem Details helpers for RFC 9457 compliance.

The site builder reports fatal configuration and settings failures as RFC 9457
Problem Details payloads so the CLI can print a machine-readable explanation
before exiting.

Examples
--------
>>> from refsite.problem_details import ProblemDetailsParams, build_problem_details, render_problem
>>> problem = build_problem_details(
...     ProblemDetailsParams(
...         type="https://refsite.dev/problems/config-invalid",
...         title="Invalid site configuration",
...         status=422,
...         detail="module is not set",
...         instance="urn:refsite:config:module",
...         extensions={"field": "module"},
...     )
... )
>>> assert "config-invalid" in render_problem(problem)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "PROBLEM_BASE_URL",
    "JsonPrimitive",
    "JsonValue",
    "ProblemDetailsDict",
    "ProblemDetailsParams",
    "build_problem_details",
    "coerce_optional_dict",
    "problem_from_exception",
    "render_problem",
]

PROBLEM_BASE_URL = "https://refsite.dev/problems"

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list[JsonValue] | dict[str, JsonValue]
type ProblemDetailsDict = dict[str, JsonValue]


def coerce_optional_dict(
    mapping: Mapping[str, JsonValue] | None,
) -> dict[str, JsonValue] | None:
    """Return ``mapping`` as a ``dict`` when non-empty, otherwise ``None``.

    Parameters
    ----------
    mapping : Mapping[str, JsonValue] | None
        Mapping of extension values.

    Returns
    -------
    dict[str, JsonValue] | None
        Materialised dictionary or ``None`` when ``mapping`` is empty/``None``.
    """
    if mapping is None:
        return None
    materialised = {str(key): value for key, value in mapping.items()}
    if not materialised:
        return None
    return materialised


@dataclass(frozen=True, slots=True)
class ProblemDetailsParams:
    """Core fields required to build a Problem Details payload."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    extensions: Mapping[str, JsonValue] | None = None


def build_problem_details(params: ProblemDetailsParams) -> ProblemDetailsDict:
    """Build an RFC 9457 Problem Details payload.

    Extension members are merged into the top level of the payload, as the RFC
    prescribes.

    Parameters
    ----------
    params : ProblemDetailsParams
        Structured fields describing the Problem Details payload.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload conforming to RFC 9457.
    """
    payload: ProblemDetailsDict = {
        "type": params.type,
        "title": params.title,
        "status": params.status,
        "detail": params.detail,
        "instance": params.instance,
    }
    extensions = coerce_optional_dict(params.extensions)
    if extensions:
        for key, value in extensions.items():
            payload.setdefault(key, value)
    return payload


def problem_from_exception(
    exc: BaseException,
    *,
    type: str,  # noqa: A002 - mirrors the RFC member name
    title: str,
    status: int = 500,
    instance: str = "urn:refsite:error",
    extensions: Mapping[str, JsonValue] | None = None,
) -> ProblemDetailsDict:
    """Return a Problem Details payload describing ``exc``.

    Parameters
    ----------
    exc : BaseException
        Exception to describe; its message becomes ``detail``.
    type : str
        Problem type URI.
    title : str
        Short human-readable summary.
    status : int, optional
        HTTP-style status code. Defaults to ``500``.
    instance : str, optional
        URN identifying the occurrence.
    extensions : Mapping[str, JsonValue] | None, optional
        Additional members merged into the payload.

    Returns
    -------
    ProblemDetailsDict
        Problem Details payload including the exception class name.
    """
    merged: dict[str, JsonValue] = {"exception": type_name(exc)}
    extra = coerce_optional_dict(extensions)
    if extra:
        merged.update(extra)
    return build_problem_details(
        ProblemDetailsParams(
            type=type,
            title=title,
            status=status,
            detail=str(exc) or type_name(exc),
            instance=instance,
            extensions=merged,
        )
    )


def type_name(exc: BaseException) -> str:
    return type(exc).__name__


def render_problem(problem: ProblemDetailsDict, *, indent: int | None = None) -> str:
    """Render Problem Details as JSON string.

    Parameters
    ----------
    problem : ProblemDetailsDict
        Problem Details payload.
    indent : int | None, optional
        Indentation passed to :func:`json.dumps`; ``None`` renders minified.

    Returns
    -------
    str
        JSON-encoded Problem Details (no trailing newline).
    """
    if indent is None:
        return json.dumps(problem, separators=(",", ":"), sort_keys=True)
    return json.dumps(problem, indent=indent, sort_keys=True)
