from typing import Optional

from .models import NewRecord
from .errors import ValidationError


def _require_text(name: str, value, max_length: Optional[int]) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


def validate_submission(
    author,
    body,
    secret,
    *,
    max_author_length: Optional[int] = None,
    max_body_length: Optional[int] = None,
) -> NewRecord:
    """
    Check a submission and return the record to insert.

    Values are kept as typed; trimming is only used to decide emptiness,
    so the stored secret is exactly what the author chose.
    """
    return NewRecord(
        author=_require_text("author", author, max_author_length),
        body=_require_text("body", body, max_body_length),
        secret=_require_text("secret", secret, None),
    )
