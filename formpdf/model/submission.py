"""Submitted values and attachment records, resolved per field kind."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Any, Union

from formpdf.model.field import FieldKind

SIGNATURE_PREFIX = "data:image"
FALSE_STRINGS = {"", "false", "0", "off", "no"}


@dataclass(frozen=True, slots=True)
class TextValue:
    text: str


@dataclass(frozen=True, slots=True)
class FlagValue:
    checked: bool


@dataclass(frozen=True, slots=True)
class AttachmentsValue:
    items: tuple[Any, ...]

    def names(self) -> list[str]:
        return [describe_item(item) for item in self.items if item]


@dataclass(frozen=True, slots=True)
class RawValue:
    raw: Any


FieldValue = Union[TextValue, FlagValue, AttachmentsValue, RawValue]


@dataclass(frozen=True, slots=True)
class Attachment:
    field_id: str
    name: str
    path: str = ""
    data: bytes | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Attachment | None:
        field_id = record.get("fieldId", record.get("field"))
        if field_id is None or str(field_id).strip() == "":
            return None
        path = str(record.get("path") or "")
        name = str(
            record.get("originalname")
            or record.get("name")
            or record.get("filename")
            or (os.path.basename(path) if path else "")
            or "Attachment"
        )
        data = record.get("data")
        return cls(
            field_id=str(field_id),
            name=name,
            path=path,
            data=data if isinstance(data, (bytes, bytearray)) else None,
        )

    def resolve(self, upload_root: str | Path | None = None) -> Path | None:
        if not self.path:
            return None
        candidate = Path(self.path)
        if candidate.is_absolute() and candidate.exists():
            return candidate
        root = Path(upload_root) if upload_root is not None else Path.cwd()
        return (root / self.path.lstrip("/\\")).resolve()


def describe_item(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        name = item.get("originalname") or item.get("name") or item.get("path")
        return str(name) if name else json.dumps(item, default=str)
    return str(item)


def format_value(value: Any) -> str:
    """Readable text for any submitted value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(describe_item(item) for item in value if item)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def is_signature_data(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(SIGNATURE_PREFIX)


def resolve_value(kind: FieldKind, raw: Any) -> FieldValue | None:
    if kind is FieldKind.CHECKBOX:
        return FlagValue(is_truthy(raw))
    if raw is None:
        return None
    if kind is FieldKind.SIGNATURE:
        return TextValue(raw) if isinstance(raw, str) else RawValue(raw)
    if kind is FieldKind.PHOTO:
        if isinstance(raw, (list, tuple)):
            return AttachmentsValue(tuple(raw))
        return RawValue(raw)
    return TextValue(format_value(raw))
