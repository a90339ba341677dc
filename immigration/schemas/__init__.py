"""
Typed input validation.

Validators take a raw JSON payload and return a ValidationResult instead of
raising: either a typed input struct in ``value`` or a field → message map
in ``errors``.  Services decide what to do with a failed result (normally
``result.unwrap()``, which raises ValidationError → HTTP 422).
"""

from dataclasses import dataclass, field
from typing import Any

from immigration.core.exceptions import ValidationError


@dataclass
class ValidationResult:
    """Outcome of validating one payload."""
    value: Any = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self, message: str = "Validation failed"):
        """Return value, or raise ValidationError carrying the field errors."""
        if self.errors:
            raise ValidationError(message, details=dict(self.errors))
        return self.value


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
