"""Validate tool-call arguments against a tool's declared parameters.

Each ``ToolDefinition`` is turned into a pydantic model once; dispatch
validates the raw argument mapping with it and hands the handler a typed
object instead of an untyped dict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from codemate.domain import ToolArgumentError, ToolDefinition, ToolParameter

_SCALAR_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "object": Dict[str, Any],
}


class ToolArguments(BaseModel):
    """Base for generated argument models. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore", frozen=True)


def _annotation(param: ToolParameter) -> Any:
    if param.enum:
        return Literal[param.enum]  # type: ignore[valid-type]
    if param.type == "array":
        item = _SCALAR_TYPES.get(param.items or "", Any)
        return List[item]  # type: ignore[valid-type]
    if param.type not in _SCALAR_TYPES:
        raise ValueError(f"Unsupported parameter type {param.type!r}")
    return _SCALAR_TYPES[param.type]


def build_arguments_model(definition: ToolDefinition) -> Type[ToolArguments]:
    """Build the pydantic model for ``definition``'s parameters.

    Optional parameters default to ``None``.  ``ToolRegistry`` builds each
    model once at registration.
    """
    fields: Dict[str, Tuple[Any, Any]] = {}
    for name, param in definition.parameters.items():
        annotation = _annotation(param)
        if name in definition.required:
            fields[name] = (annotation, ...)
        else:
            fields[name] = (Optional[annotation], None)
    model_name = "".join(part.title() for part in definition.name.split("_")) + "Arguments"
    return create_model(model_name, __base__=ToolArguments, **fields)  # type: ignore[call-overload]


def validate_arguments(
    definition: ToolDefinition,
    arguments: Mapping[str, Any],
    model: Optional[Type[ToolArguments]] = None,
) -> ToolArguments:
    """Return typed arguments or raise ``ToolArgumentError`` listing every bad field."""
    if "_raw" in arguments and len(arguments) == 1:
        raise ToolArgumentError(
            definition.name,
            [f"arguments are not valid JSON: {str(arguments['_raw'])[:200]!r}"],
        )
    model = model or build_arguments_model(definition)
    try:
        return model.model_validate(dict(arguments))
    except ValidationError as exc:
        raise ToolArgumentError(definition.name, _format_issues(exc)) from exc


def _format_issues(exc: ValidationError) -> List[str]:
    issues = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<arguments>"
        issues.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return issues
