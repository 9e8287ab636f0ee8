"""Tests for ToolRegistry dispatch and tool argument validation."""
from __future__ import annotations

import asyncio

import pytest

from codemate.application.tool_registry import ToolOutcome, ToolRegistry
from codemate.application.tool_schema import build_arguments_model, validate_arguments
from codemate.domain import PermissionDeniedError, ToolArgumentError, ToolCall, ToolParameter
from codemate.infrastructure.tools.tool_defs import ASK_USER, COMPLETE, make_tool_def

ECHO = make_tool_def(
    "echo",
    "Echo text back.",
    {
        "text": ToolParameter("string", "Text to echo."),
        "times": ToolParameter("integer", "Repeat count."),
        "mode": ToolParameter("string", "Case.", enum=("upper", "lower")),
    },
    required=["text"],
)


def _call(name: str = "echo", **arguments) -> ToolCall:
    return ToolCall(id="call_1", name=name, arguments=arguments)


def _registry(handler, **kwargs) -> ToolRegistry:
    registry = ToolRegistry(**kwargs)
    registry.register(ECHO, handler)
    return registry


async def _echo(args) -> ToolOutcome:
    text = args.text * (args.times or 1)
    if args.mode == "upper":
        text = text.upper()
    return ToolOutcome.ok(text)


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------


def test_arguments_model_types_and_defaults():
    model = build_arguments_model(ECHO)
    args = model.model_validate({"text": "hi", "unexpected": 1})
    assert model.__name__ == "EchoArguments"
    assert args.text == "hi"
    assert args.times is None
    assert not hasattr(args, "unexpected")


def test_validate_arguments_lists_every_bad_field():
    with pytest.raises(ToolArgumentError) as excinfo:
        validate_arguments(ECHO, {"times": "many", "mode": "sideways"})
    err = excinfo.value
    assert err.tool_name == "echo"
    fields = {issue.split(":")[0] for issue in err.issues}
    assert fields == {"text", "times", "mode"}


def test_enum_parameter_accepts_only_listed_values():
    model = build_arguments_model(ECHO)
    assert model.model_validate({"text": "a", "mode": "lower"}).mode == "lower"
    with pytest.raises(ToolArgumentError) as excinfo:
        validate_arguments(ECHO, {"text": "a", "mode": "title"}, model)
    assert excinfo.value.issues[0].startswith("mode:")
    assert "'upper'" in excinfo.value.issues[0]


def test_validate_arguments_rejects_unparsed_json():
    with pytest.raises(ToolArgumentError, match="not valid JSON"):
        validate_arguments(ECHO, {"_raw": "{text: oops"})


def test_array_parameters_are_typed():
    args = validate_arguments(ASK_USER, {"question": "Pick", "options": ["a", "b"]})
    assert args.options == ["a", "b"]
    with pytest.raises(ToolArgumentError):
        validate_arguments(COMPLETE, {"summary": "x", "files_changed": "a.py"})


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def test_register_rejects_duplicates():
    registry = _registry(_echo)
    with pytest.raises(ValueError, match="already registered"):
        registry.register(ECHO, _echo)


def test_lookup_and_definitions():
    registry = _registry(_echo)
    registry.register(COMPLETE)
    assert "echo" in registry
    assert "nope" not in registry
    assert registry.get("echo") is ECHO
    assert registry.get("nope") is None
    assert [d.name for d in registry.definitions] == ["echo", "complete"]


def test_parse_arguments_unknown_tool_raises_key_error():
    registry = _registry(_echo)
    with pytest.raises(KeyError):
        registry.parse_arguments(_call("nope"))


def test_files_changed_accumulator_deduplicates():
    registry = ToolRegistry()
    registry.record_change("a.py")
    registry.record_change("b.py")
    registry.record_change("a.py")
    assert registry.files_changed == ["a.py", "b.py"]
    registry.reset_files_changed()
    assert registry.files_changed == []


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_execute_success_carries_ids_and_duration():
    result = await _registry(_echo).execute(_call(text="ab", times=2, mode="upper"))
    assert result.success is True
    assert result.output == "ABAB"
    assert result.error is None
    assert result.tool_call_id == "call_1"
    assert result.name == "echo"
    assert result.duration_ms is not None and result.duration_ms >= 0


@pytest.mark.asyncio
async def test_execute_unknown_tool():
    result = await _registry(_echo).execute(_call("nope"))
    assert result.success is False
    assert result.error == "Unknown tool: nope"


@pytest.mark.asyncio
async def test_execute_tool_without_handler():
    registry = ToolRegistry()
    registry.register(COMPLETE)
    result = await registry.execute(_call("complete", summary="x"))
    assert result.success is False
    assert "cannot be dispatched" in result.error


@pytest.mark.asyncio
async def test_execute_invalid_arguments_never_reach_handler():
    called = []

    async def handler(args):
        called.append(args)
        return ToolOutcome.ok("x")

    result = await _registry(handler).execute(_call(times=1))
    assert result.success is False
    assert "text" in result.error
    assert called == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc, prefix",
    [
        (PermissionDeniedError("permission denied: 'write' is disabled"), "permission denied: 'write'"),
        (PermissionError("outside root"), "permission denied: outside root"),
        (ValueError("bad path"), "invalid arguments: bad path"),
        (FileNotFoundError("gone"), "I/O error: gone"),
        (RuntimeError("kaboom"), "unexpected error (RuntimeError): kaboom"),
    ],
)
async def test_execute_classifies_handler_exceptions(exc, prefix):
    async def handler(args):
        raise exc

    result = await _registry(handler).execute(_call(text="x"))
    assert result.success is False
    assert result.error.startswith(prefix)


@pytest.mark.asyncio
async def test_execute_handler_timeout():
    async def slow(args):
        await asyncio.sleep(1)
        return ToolOutcome.ok("late")

    result = await _registry(slow, tool_timeout_s=0.05).execute(_call(text="x"))
    assert result.success is False
    assert result.error.startswith("timeout")


@pytest.mark.asyncio
async def test_handler_failure_outcome_is_passed_through():
    async def handler(args):
        return ToolOutcome.fail("nothing to do")

    result = await _registry(handler).execute(_call(text="x"))
    assert result.success is False
    assert result.output is None
    assert result.error == "nothing to do"
