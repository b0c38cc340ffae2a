"""
Configuration payload schema.

Every host configuration call passes a JSON payload (text or an already
decoded value). Payloads are validated here, at the boundary, so a malformed
payload fails its setter with a ConfigurationError before any state changes.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from .errors import ConfigurationError

T = TypeVar("T")


class StepPayload(BaseModel):
    """
    One entry of a step list.

    The first line of ``insert_text`` is the step head (keyword + phrase with
    placeholders); remaining lines are the body inserted below it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    insert_text: str = Field(..., alias="insertText")
    documentation: str = ""
    sort_text: str | None = Field(default=None, alias="sortText")
    section: str = ""
    kind: int | None = None


class TextNode(BaseModel):
    """A text token as produced by the host's feature-file parser."""

    model_config = ConfigDict(extra="ignore")

    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_plain_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"text": data}
        if isinstance(data, int | float | bool):
            return {"text": str(data)}
        return data


class RowNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tokens: list[TextNode] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_cell_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"tokens": data}
        return data


class TableNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    head: RowNode
    body: list[RowNode] = Field(default_factory=list)


class LinesNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lines: list[TextNode] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_line_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"lines": data}
        if isinstance(data, str):
            return {"lines": data.split("\n")}
        return data


class ImportedItemPayload(BaseModel):
    """A named value, multi-line text or data table exported by an imported file."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    value: TextNode | None = None
    table: TableNode | None = None
    lines: LinesNode | None = None


class ImportedFilePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    path: str = ""
    items: list[ImportedItemPayload] = Field(default_factory=list)


class ErrorLinkPayload(BaseModel):
    """A host action offered next to syntax errors."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    title: str


_ADAPTERS: dict[Any, TypeAdapter[Any]] = {}


def _adapter(type_: Any) -> TypeAdapter[Any]:
    adapter = _ADAPTERS.get(type_)
    if adapter is None:
        adapter = _ADAPTERS[type_] = TypeAdapter(type_)
    return adapter


def decode_payload(category: str, payload: Any) -> Any:
    """Decode JSON text; already-decoded values pass through unchanged."""
    if isinstance(payload, str | bytes | bytearray):
        try:
            return json.loads(payload)
        except ValueError as e:
            raise ConfigurationError(category, f"invalid JSON payload: {e}") from e
    return payload


def parse_payload(category: str, payload: Any, type_: type[T] | Any) -> T:
    """
    Decode and validate a configuration payload.

    Args:
        category: Configuration category, reported in errors
        payload: JSON text or decoded value
        type_: Expected type (pydantic-compatible)

    Returns:
        The validated value

    Raises:
        ConfigurationError: If the payload is not JSON or does not match ``type_``
    """
    data = decode_payload(category, payload)
    try:
        return _adapter(type_).validate_python(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(category, f"invalid payload: {errors}") from e


def stringify_value(value: Any) -> str:
    """Render a variable value the way the host displays it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
