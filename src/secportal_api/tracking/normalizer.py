"""
Payload Normalizer

Validates an inbound report submission and reshapes it into the row written to
the requests table: scalar columns plus canonical JSON text for the blob columns.
"""

import json
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable
from typing import Dict
from typing import Mapping
from typing import Optional

from secportal_api.errors import ValidationError
from secportal_api.tracking.enums import Priority
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.enums import RequestType
from secportal_api.tracking.ids import IdentifierGenerator
from secportal_api.tracking.models import NormalizedRequest

# Required wire fields, in the order they are reported
REQUIRED_FIELDS = ("userInfo", "type", "reason")


def severity_to_priority(severity: Any) -> Priority:
    """Map a submitted severity to a stored priority. Unknown or absent values map to medium."""
    if isinstance(severity, str):
        try:
            return Priority(severity)
        except ValueError:
            pass
    return Priority.MEDIUM


def canonical_json(document: Mapping[str, Any]) -> str:
    """Serialize a blob the same way every time (sorted keys, compact)."""
    return json.dumps(document, sort_keys=True, separators=(",", ":"), default=str, allow_nan=False)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class PayloadNormalizer:
    """Turn a loosely-typed submission into a NormalizedRequest."""

    def __init__(
        self,
        id_generator: Optional[IdentifierGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.id_generator = id_generator or IdentifierGenerator()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def normalize(self, raw: Mapping[str, Any], owner_id: str) -> NormalizedRequest:
        """
        Validate and reshape a submission.

        Args:
            raw: Decoded request body ({userInfo, type, reason, formData?, details?})
            owner_id: Id of the submitting user

        Returns:
            NormalizedRequest ready to insert

        Raises:
            ValidationError: Required fields missing, or a field has the wrong shape
        """
        if not isinstance(raw, Mapping):
            raise ValidationError("Request body must be a JSON object")

        missing = [name for name in REQUIRED_FIELDS if _is_missing(raw.get(name))]
        if missing:
            raise ValidationError.missing(missing)

        submitter_info = self._blob(raw, "userInfo", required=True)
        form_data = self._blob(raw, "formData")
        details = self._blob(raw, "details")

        try:
            request_type = RequestType(raw["type"])
        except ValueError:
            allowed = ", ".join(member.value for member in RequestType)
            raise ValidationError(f"Invalid type '{raw['type']}'. Allowed values: {allowed}", fields=["type"])

        reason = raw["reason"]
        if not isinstance(reason, str):
            raise ValidationError("reason must be a string", fields=["reason"])

        now = self.clock()

        return NormalizedRequest(
            id=self.id_generator.new_request_id(),
            owner_id=owner_id,
            request_type=request_type,
            reason=reason,
            priority=severity_to_priority(form_data.get("severity")),
            status=RequestStatus.OPEN,
            submitter_info=submitter_info,
            form_data=form_data,
            details=details,
            submitter_info_json=self._serialize("userInfo", submitter_info),
            form_data_json=self._serialize("formData", form_data),
            details_json=self._serialize("details", details),
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _serialize(field: str, blob: Dict[str, Any]) -> str:
        # jsonb has no NaN or Infinity
        try:
            return canonical_json(blob)
        except ValueError:
            raise ValidationError(f"{field} must not contain NaN or Infinity", fields=[field])

    @staticmethod
    def _blob(raw: Mapping[str, Any], field: str, required: bool = False) -> Dict[str, Any]:
        value = raw.get(field)
        if value is None and not required:
            return {}
        if not isinstance(value, Mapping):
            raise ValidationError(f"{field} must be a JSON object", fields=[field])
        return dict(value)
