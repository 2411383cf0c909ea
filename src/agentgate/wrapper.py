"""
Composition wrapper for agentgate.

wrap_agent_tool() puts the whole pipeline in front of an arbitrary tool
function. For each call, in order:

    1. Tool policy check on the tool name      -> ToolBlockedError
    2. Redaction of every string argument       (nested dicts/lists too)
    3. Pattern guard over the redacted arguments -> ContentBlockedError
       (serialized as a JSON list)
    4. Network check of every URL argument      -> SsrfBlockedError
    5. The tool itself, with the redacted arguments

Either the tool runs on sanitized input or it does not run at all.
"""

import functools
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from agentgate.errors import ContentBlockedError, ToolBlockedError
from agentgate.guard import GuardOptions, guard
from agentgate.network import is_url_string, validate_url
from agentgate.policy import guard_tool
from agentgate.redact import redact
from agentgate.schema import Classification, Policy

logger = logging.getLogger(__name__)


def wrap_agent_tool(
    fn: Callable[..., Any],
    policy: Policy | None = None,
    tool_name: str | None = None,
    guard_options: GuardOptions | None = None,
    ssrf_check: bool = True,
) -> Callable[..., Awaitable[Any]]:
    """
    Wrap a tool function with the agentgate pipeline.

    The policy's tool_validator is called as validate(tool, args) where args is
    {"args": [positional...], "kwargs": {keyword...}}, holding the raw,
    unredacted call arguments.

    The guard sees the redacted positional arguments serialized as a JSON
    list, with the keyword arguments appended as one trailing object when
    there are any.

    Args:
        fn: Sync or async tool function
        policy: Policy applied by every layer
        tool_name: Name checked against the tool policy (defaults to fn.__name__)
        guard_options: Deep-scan options for the pattern guard
        ssrf_check: Whether to run the network check on URL arguments

    Returns:
        An async function with the same metadata as `fn`

    Example:
        >>> safe_fetch = wrap_agent_tool(fetch, policy=Policy(tool_blocklist=["shell"]))
        >>> await safe_fetch("https://example.com")
    """
    name = tool_name or getattr(fn, "__name__", "tool")

    @functools.wraps(fn)
    async def wrapped(*args: Any, **kwargs: Any) -> Any:
        decision = guard_tool(name, {"args": list(args), "kwargs": kwargs}, policy)
        if not decision.allowed:
            raise ToolBlockedError(
                tool=name,
                violations=decision.violations or [],
                reason=decision.reason or "",
            )

        safe_args = tuple(_redact_value(a, policy) for a in args)
        safe_kwargs = {k: _redact_value(v, policy) for k, v in kwargs.items()}

        # ensure_ascii=False keeps zero-width and accented characters visible to the guard
        payload = [*safe_args, safe_kwargs] if safe_kwargs else list(safe_args)
        serialized = json.dumps(
            payload,
            default=str,
            ensure_ascii=False,
        )
        verdict = await guard(serialized, policy, guard_options)
        if verdict.classification == Classification.BLOCK:
            raise ContentBlockedError(
                tool=name,
                violations=list(verdict.violation_types),
                reasoning=verdict.reasoning,
            )

        # Original arguments: redaction rewrites IP literals inside URLs
        if ssrf_check:
            for value in _iter_strings((args, kwargs)):
                if is_url_string(value):
                    await validate_url(value, tool=name)

        logger.debug("Invoking %s after all checks passed", name)
        result = fn(*safe_args, **safe_kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return wrapped


def _redact_value(value: Any, policy: Policy | None) -> Any:
    if isinstance(value, str):
        return redact(value, policy).redacted
    if isinstance(value, dict):
        return {k: _redact_value(v, policy) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_value(v, policy) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact_value(v, policy) for v in value)
    return value


def _iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from _iter_strings(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _iter_strings(v)
