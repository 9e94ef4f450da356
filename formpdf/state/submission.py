"""Render-ready view of one submission: values, signatures and attachments."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from formpdf.model.field import TemplateField
from formpdf.model.submission import Attachment, FieldValue, resolve_value

logger = logging.getLogger(__name__)

FILES_KEY = "files"
SIGNATURE_KEY_PREFIX = "signature_"


@dataclass(slots=True)
class NormalizedSubmission:
    fields: list[TemplateField] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    signatures: dict[str, str] = field(default_factory=dict)
    attachments: dict[str, list[Attachment]] = field(default_factory=dict)
    upload_root: Path | None = None

    def value_for(self, template_field: TemplateField) -> Any:
        return self.values.get(template_field.id)

    def signature_for(self, template_field: TemplateField) -> Any:
        signature = self.signatures.get(template_field.id)
        if signature:
            return signature
        stored = self.values.get(f"{SIGNATURE_KEY_PREFIX}{template_field.id}")
        if stored:
            return stored
        return self.values.get(template_field.id)

    def resolved_value(self, template_field: TemplateField) -> FieldValue | None:
        return resolve_value(template_field.kind, self.value_for(template_field))

    def attachments_for(self, template_field: TemplateField) -> list[Attachment]:
        return self.attachments.get(template_field.id, [])

    def untracked_items(self) -> list[tuple[str, Any]]:
        known = {template_field.id for template_field in self.fields}
        return [
            (key, value)
            for key, value in self.values.items()
            if key not in known and not is_reserved_key(key)
        ]


def is_reserved_key(key: str) -> bool:
    return key == FILES_KEY or key.startswith(SIGNATURE_KEY_PREFIX)


def group_attachments(records: Iterable[Any]) -> dict[str, list[Attachment]]:
    grouped: dict[str, list[Attachment]] = defaultdict(list)
    for record in records:
        if isinstance(record, Attachment):
            grouped[record.field_id].append(record)
            continue
        if not isinstance(record, Mapping):
            logger.debug("Dropping attachment record of type %s", type(record).__name__)
            continue
        attachment = Attachment.from_record(record)
        if attachment is None:
            logger.debug("Dropping attachment without field association: %r", record.get("path"))
            continue
        grouped[attachment.field_id].append(attachment)
    return dict(grouped)


def normalize_submission(
    template: Iterable[TemplateField],
    values: Mapping[Any, Any] | None,
    signatures: Mapping[Any, Any] | None = None,
    files: Iterable[Any] | None = None,
    upload_root: str | Path | None = None,
) -> NormalizedSubmission:
    normalized: dict[str, Any] = {}
    records: list[Any] = []
    for key, value in (values or {}).items():
        key = str(key)
        if key == FILES_KEY:
            if isinstance(value, (list, tuple)):
                records.extend(value)
            continue
        normalized[key] = value

    if files:
        records.extend(files)

    signature_map = {
        str(key): value
        for key, value in (signatures or {}).items()
        if isinstance(value, str) and value
    }

    return NormalizedSubmission(
        fields=list(template),
        values=normalized,
        signatures=signature_map,
        attachments=group_attachments(records),
        upload_root=Path(upload_root) if upload_root is not None else None,
    )
