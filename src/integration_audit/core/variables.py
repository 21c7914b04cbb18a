"""Check variable resolution and dynamic option fetching."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from integration_audit.models.manifest import (
    CheckVariable,
    CheckVariableValue,
    CheckVariableValues,
    VariableOption,
)
from integration_audit.utils.errors import ValidationError

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


class VariableFetchContext:
    """The narrow API handed to ``fetch_options`` routines.

    Option fetchers only read from the provider, so they get the request
    helpers of a CheckContext and nothing that records results.
    """

    def __init__(self, context: Any) -> None:
        self._context = context

    @property
    def access_token(self) -> str | None:
        return self._context.access_token

    async def fetch(self, path: str, **kwargs: Any) -> Any:
        return await self._context.fetch(path, **kwargs)

    async def fetch_all_pages(self, path: str, **kwargs: Any) -> list[Any]:
        return await self._context.fetch_all_pages(path, **kwargs)

    async def graphql(self, query: str, variables: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return await self._context.graphql(query, variables, **kwargs)


async def fetch_variable_options(variable: CheckVariable, context: Any) -> list[VariableOption]:
    """List the options of a select variable.

    Static ``options`` are returned as-is. Otherwise ``fetch_options`` is
    awaited with a VariableFetchContext wrapping ``context``; its items may be
    VariableOption instances or ``{"value", "label"}`` mappings.

    Args:
        variable: Variable definition
        context: CheckContext used for the provider requests

    Returns:
        Available options, empty when the variable has none
    """
    if variable.options is not None:
        return list(variable.options)
    if variable.fetch_options is None:
        return []

    raw = await variable.fetch_options(VariableFetchContext(context))
    return [item if isinstance(item, VariableOption) else VariableOption.model_validate(item) for item in raw]


def _coerce_number(variable: CheckVariable, value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValidationError(f"Variable '{variable.id}' must be a number", field=variable.id)
    if isinstance(value, (int, float)):
        return value
    try:
        text = str(value).strip()
        return int(text) if text.lstrip("-").isdigit() else float(text)
    except ValueError as e:
        raise ValidationError(f"Variable '{variable.id}' must be a number, got {value!r}", field=variable.id) from e


def _coerce_boolean(variable: CheckVariable, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"Variable '{variable.id}' must be a boolean, got {value!r}", field=variable.id)


def _check_option(variable: CheckVariable, value: str) -> None:
    if variable.options is None:
        return
    allowed = {option.value for option in variable.options}
    if value not in allowed:
        raise ValidationError(
            f"Variable '{variable.id}' has invalid option {value!r}; expected one of {sorted(allowed)}",
            field=variable.id,
        )


def coerce_variable(variable: CheckVariable, value: Any) -> CheckVariableValue:
    """Convert a configured value to the variable's declared type."""
    if value is None:
        return None

    if variable.type == "number":
        return _coerce_number(variable, value)
    if variable.type == "boolean":
        return _coerce_boolean(variable, value)
    if variable.type == "multi-select":
        if isinstance(value, str):
            items = [item.strip() for item in value.split(",") if item.strip()]
        elif isinstance(value, Sequence):
            items = [str(item) for item in value]
        else:
            items = [str(value)]
        for item in items:
            _check_option(variable, item)
        return items
    if variable.type == "select":
        value = str(value)
        _check_option(variable, value)
        return value
    return str(value)


def resolve_variables(
    definitions: Sequence[CheckVariable],
    values: Mapping[str, Any] | None = None,
) -> CheckVariableValues:
    """Resolve configured values against variable definitions.

    Missing values take the definition's default. Values for ids with no
    definition are passed through unchanged.

    Args:
        definitions: Variables declared for the check
        values: Configured values keyed by variable id

    Returns:
        Values keyed by variable id

    Raises:
        ValidationError: If a required variable has no value or a value has
            the wrong type
    """
    values = dict(values or {})
    resolved: CheckVariableValues = {}

    for variable in definitions:
        value = values.pop(variable.id, None)
        if value is None or value == "" or value == []:
            value = variable.default
        if variable.required and (value is None or value == "" or value == []):
            raise ValidationError(f"Required variable '{variable.id}' is not set", field=variable.id)
        resolved[variable.id] = coerce_variable(variable, value)

    resolved.update(values)
    return resolved
