"""Rule-pipeline validator.

Runs every rule of every field, in order, and collects all failures.
No rule stops later rules or later fields.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from keel.validation.result import ValidationResult
from keel.validation.rules import RULES, Rule, RuleContext, RuleSet, parse_rule, split_rules

if TYPE_CHECKING:
    from keel.data.query import QueryBuilder

logger = logging.getLogger("keel.validation")


class Validator:
    """Validate *data* against *rules* at construction time.

    Usage::

        v = Validator(request.all(), {
            "email": "required|email|unique:users",
            "password": ["required", "min:8", "confirmed"],
        }, db=builder)
        if v.fails():
            return json_response({"errors": v.errors()}, status=422)
        data = v.validated()

    *db* is required only by the ``unique`` rule. *extra_rules* add or
    override rules for this validator without touching the global
    registry.
    """

    __slots__ = ("_data", "_db", "_registry", "_result", "_rules")

    def __init__(
        self,
        data: Mapping[str, Any],
        rules: RuleSet,
        *,
        db: QueryBuilder | None = None,
        extra_rules: Mapping[str, Rule] | None = None,
    ) -> None:
        self._data = data
        self._rules = rules
        self._db = db
        self._registry: Mapping[str, Rule] = {**RULES, **extra_rules} if extra_rules else RULES
        self._result = self._run()

    def _run(self) -> ValidationResult:
        errors: dict[str, list[str]] = {}
        validated: dict[str, Any] = {}

        for field, field_rules in self._rules.items():
            value = self._data.get(field)
            ctx = RuleContext(field=field, data=self._data, db=self._db)
            messages: list[str] = []
            for entry in split_rules(field_rules):
                name, params = parse_rule(entry)
                check = self._registry.get(name)
                if check is None:
                    logger.warning("Unknown validation rule %r on field %r; skipped", name, field)
                    continue
                message = check(value, params, ctx)
                if message is not None:
                    messages.append(message)

            if messages:
                errors[field] = messages
            else:
                validated[field] = value

        return ValidationResult(errors=errors, validated=validated)

    @property
    def result(self) -> ValidationResult:
        return self._result

    def fails(self) -> bool:
        return not self._result.is_valid

    def passes(self) -> bool:
        return self._result.is_valid

    def errors(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._result.errors.items()}

    def validated(self) -> dict[str, Any]:
        return dict(self._result.validated)
