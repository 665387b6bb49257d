"""Dynamic loading of user-supplied callables.

Specs use the format ``module.submodule:function_name``. They name live
function-call handlers and the optional adapter resolver hook.
"""

from __future__ import annotations

import importlib
from functools import lru_cache
from typing import Any, Callable, Mapping

from ..errors import InvalidParamsError


def _parse_spec(spec: str) -> tuple[str, str]:
    text = spec.strip()
    module_name, sep, fn_name = text.partition(":")
    module_name = module_name.strip()
    fn_name = fn_name.strip()
    if not sep or not module_name or not fn_name:
        raise InvalidParamsError(
            f"Invalid callable spec '{spec}'",
            hint="Use the form package.module:function",
        )
    return module_name, fn_name


@lru_cache(maxsize=64)
def load_callable_from_spec(spec: str) -> Callable[..., Any]:
    """Import and cache the callable named by one spec string."""
    module_name, fn_name = _parse_spec(spec)
    try:
        module = importlib.import_module(module_name)
    except Exception as err:
        raise InvalidParamsError(f"Failed to import module '{module_name}' for spec '{spec}': {err}") from err
    fn = getattr(module, fn_name, None)
    if fn is None or not callable(fn):
        raise InvalidParamsError(f"Callable '{fn_name}' not found in module '{module_name}'")
    return fn


def load_handlers(specs: Mapping[str, str | Callable[..., Any]]) -> dict[str, Callable[..., Any]]:
    """Resolve a ``{function_name: spec}`` mapping into callables; callables pass through."""
    return {
        str(name): spec if callable(spec) else load_callable_from_spec(str(spec)) for name, spec in specs.items()
    }
