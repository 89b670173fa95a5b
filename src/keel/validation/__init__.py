"""Input validation — named rule pipelines, structured errors.

Usage::

    from keel.validation import validate

    result = validate(request.all(), {
        "name": "required|max:255",
        "email": "required|email",
        "status": "in:draft,sent,paid",
    })
    if not result:
        return json_response({"errors": result.errors}, status=422)
    # result.validated has the values of passing fields
"""

from collections.abc import Mapping
from typing import Any

from keel.validation.responses import failure_response
from keel.validation.result import ValidationResult
from keel.validation.rules import RULES, Rule, RuleContext, RuleSet, register_rule, rule
from keel.validation.validator import Validator

__all__ = [
    "RULES",
    "Rule",
    "RuleContext",
    "RuleSet",
    "ValidationResult",
    "Validator",
    "failure_response",
    "register_rule",
    "rule",
    "validate",
]


def validate(data: Mapping[str, Any], rules: RuleSet, *, db: Any = None) -> ValidationResult:
    """Validate *data* against *rules* and return the result.

    Args:
        data: Any mapping of field names to values: ``request.all()``,
            a parsed JSON body, or a plain ``dict``.
        rules: Field name to ``"rule|rule:param"`` string or list of rule
            strings.
        db: A ``QueryBuilder``, required by the ``unique`` rule.

    Example::

        result = validate({"email": "nope"}, {"email": "required|email"})
        # result.errors == {"email": ["The email must be a valid email address."]}
    """
    return Validator(data, rules, db=db).result
