"""Template field model definitions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import Any

logger = logging.getLogger(__name__)

MIN_FIELD_WIDTH = 160.0
MIN_FIELD_HEIGHT = 48.0


class FieldKind(str, Enum):
    TEXT = "text"
    PARAGRAPH = "paragraph"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"
    PHOTO = "photo"

    @classmethod
    def parse(cls, raw: Any) -> FieldKind:
        name = str(raw or "").strip().lower()
        if name == "textarea":
            return cls.PARAGRAPH
        try:
            return cls(name)
        except ValueError:
            logger.debug("Unknown field kind %r, rendering as text", raw)
            return cls.TEXT


# Editor defaults for fields saved without an explicit size.
BASE_DIMENSIONS: dict[FieldKind, tuple[float, float]] = {
    FieldKind.TEXT: (280.0, 72.0),
    FieldKind.CHECKBOX: (240.0, 56.0),
    FieldKind.SIGNATURE: (320.0, 160.0),
    FieldKind.PHOTO: (320.0, 200.0),
}
DEFAULT_DIMENSIONS = (260.0, 80.0)


class TemplateParseError(ValueError):
    """Raised when a template descriptor cannot be turned into a field."""


@dataclass(slots=True)
class TemplateField:
    id: str
    kind: FieldKind
    x: float
    y: float
    width: float
    height: float
    label: str = ""
    placeholder: str = ""
    checkbox_label: str = ""
    required: bool = False
    depends_on: str | None = None

    def __post_init__(self) -> None:
        self.x = max(0.0, self.x)
        self.y = max(0.0, self.y)
        self.width = max(MIN_FIELD_WIDTH, self.width)
        self.height = max(MIN_FIELD_HEIGHT, self.height)

    @property
    def display_label(self) -> str:
        return self.label or f"Field {self.id}"

    @property
    def display_checkbox_label(self) -> str:
        return self.checkbox_label or "Option"

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def parse_number(value: Any, fallback: float) -> float:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else fallback
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return fallback
        return number if math.isfinite(number) else fallback
    return fallback


def parse_field(descriptor: Any) -> TemplateField:
    if not isinstance(descriptor, Mapping):
        raise TemplateParseError(f"Field descriptor must be a mapping, got {type(descriptor).__name__}")
    raw_id = descriptor.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        raise TemplateParseError("Field descriptor has no id")

    kind = FieldKind.parse(descriptor.get("type", descriptor.get("kind")))
    base_w, base_h = BASE_DIMENSIONS.get(kind, DEFAULT_DIMENSIONS)

    position = descriptor.get("position") or {}
    size = descriptor.get("size") or {}
    if not isinstance(position, Mapping):
        position = {}
    if not isinstance(size, Mapping):
        size = {}

    width_raw = size.get("width", descriptor.get("width"))
    height_raw = size.get("height", descriptor.get("height"))
    depends_on = descriptor.get("dependsOn", descriptor.get("depends_on"))

    placeholder = str(descriptor.get("placeholder") or "")
    if not placeholder and kind is FieldKind.PARAGRAPH:
        placeholder = "Add multi-line notes or instructions"

    return TemplateField(
        id=str(raw_id),
        kind=kind,
        x=parse_number(position.get("x"), 0.0),
        y=parse_number(position.get("y"), 0.0),
        width=parse_number(width_raw, base_w),
        height=parse_number(height_raw, base_h),
        label=str(descriptor.get("label") or ""),
        placeholder=placeholder,
        checkbox_label=str(descriptor.get("checkboxLabel", descriptor.get("checkbox_label")) or ""),
        required=bool(descriptor.get("required", False)),
        depends_on=str(depends_on) if depends_on not in (None, "") else None,
    )


def parse_template(
    descriptors: Iterable[Any] | None,
) -> tuple[list[TemplateField], list[tuple[int, str]]]:
    """Parse descriptors in order; invalid ones are returned as ``(index, reason)``."""
    fields: list[TemplateField] = []
    skipped: list[tuple[int, str]] = []
    for index, descriptor in enumerate(descriptors or []):
        if isinstance(descriptor, TemplateField):
            fields.append(descriptor)
            continue
        try:
            fields.append(parse_field(descriptor))
        except TemplateParseError as exc:
            logger.warning("Skipping template entry %d: %s", index, exc)
            skipped.append((index, str(exc)))
    return fields, skipped


def field_to_descriptor(field: TemplateField) -> dict[str, Any]:
    """Serialize a field back into the editor's JSON shape."""
    descriptor: dict[str, Any] = {
        "id": field.id,
        "type": field.kind.value,
        "label": field.label,
        "required": field.required,
        "position": {"x": field.x, "y": field.y},
        "size": {"width": field.width, "height": field.height},
    }
    if field.placeholder:
        descriptor["placeholder"] = field.placeholder
    if field.checkbox_label:
        descriptor["checkboxLabel"] = field.checkbox_label
    if field.depends_on is not None:
        descriptor["dependsOn"] = field.depends_on
    return descriptor
