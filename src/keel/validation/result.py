"""Validation result — immutable container for validated data and errors."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of running a rule set over input data.

    ``is_valid`` is True when there are no errors.
    The result is falsy when invalid, so you can write::

        result = validate(data, rules)
        if not result:
            return json_response({"errors": result.errors}, status=422)

    ``validated`` holds the values of every field that passed all of its
    rules, even when other fields failed.

    ``errors`` maps field names to messages in rule order::

        {"email": ["The email must be a valid email address."],
         "password": ["The password must be at least 8 characters.",
                      "The password confirmation does not match."]}
    """

    errors: dict[str, list[str]]
    validated: dict[str, Any]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        """Falsy when invalid — enables ``if not result:`` pattern."""
        return self.is_valid

    def first(self, field: str) -> str | None:
        """First message for *field*, or ``None``."""
        messages = self.errors.get(field)
        return messages[0] if messages else None
