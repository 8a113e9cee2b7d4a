"""Input validation helpers.

Pure synchronous checks run before any engine logic. Each returns a
``ValidationResult``; ``raise_if_invalid`` turns the first failure into a
``ValidationError``.
"""

import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from clubcore.core.errors import ValidationError


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    message: Optional[str] = None
    field: Optional[str] = None


OK = ValidationResult(valid=True)

_PHONE_SEPARATORS = re.compile(r"[\s\-().+]")


def _not_a_string(value: Any, field: str) -> Optional[ValidationResult]:
    if value is not None and not isinstance(value, str):
        return ValidationResult(valid=False, message=f"{field} must be a string", field=field)
    return None


def validate_required(value: Any, field: str) -> ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult(valid=False, message=f"{field} is required", field=field)
    return _not_a_string(value, field) or OK


def validate_min_length(value: Optional[str], minimum: int, field: str) -> ValidationResult:
    wrong_type = _not_a_string(value, field)
    if wrong_type:
        return wrong_type
    if value is None or len(value.strip()) < minimum:
        return ValidationResult(
            valid=False,
            message=f"{field} must be at least {minimum} characters",
            field=field,
        )
    return OK


def validate_max_length(value: Optional[str], maximum: int, field: str) -> ValidationResult:
    wrong_type = _not_a_string(value, field)
    if wrong_type:
        return wrong_type
    if value is not None and len(value) > maximum:
        return ValidationResult(
            valid=False,
            message=f"{field} must be at most {maximum} characters",
            field=field,
        )
    return OK


def validate_phone(value: Optional[str], field: str = "phone_number") -> ValidationResult:
    """9 or 10 digits once separators are stripped."""
    if value is None or value == "":
        return ValidationResult(valid=False, message=f"{field} is required", field=field)
    wrong_type = _not_a_string(value, field)
    if wrong_type:
        return wrong_type
    digits = _PHONE_SEPARATORS.sub("", value)
    if not digits.isdigit() or len(digits) not in (9, 10):
        return ValidationResult(
            valid=False, message=f"{field} must contain 9-10 digits", field=field
        )
    return OK


def validate_documents(documents: Any) -> ValidationResult:
    if not isinstance(documents, list):
        return ValidationResult(valid=False, message="documents must be a list", field="documents")
    for index, document in enumerate(documents):
        if not isinstance(document, dict) or not document.get("type") or not document.get("url"):
            return ValidationResult(
                valid=False,
                message=f"documents[{index}] must have a type and url",
                field="documents",
            )
    return OK


def validate_personal_info(personal_info: Any) -> list[ValidationResult]:
    if not isinstance(personal_info, dict):
        return [
            ValidationResult(valid=False, message="personal_info must be an object", field="personal_info")
        ]
    return [
        validate_required(personal_info.get("full_name"), "full_name"),
        validate_max_length(personal_info.get("full_name"), 200, "full_name"),
        validate_phone(personal_info.get("phone_number")),
    ]


def raise_if_invalid(results: Iterable[ValidationResult]) -> None:
    for result in results:
        if not result.valid:
            raise ValidationError(result.message)
