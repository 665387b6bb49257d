"""Callable loading for function handlers and resolver hooks."""

from .loader import load_callable_from_spec, load_handlers

__all__ = ["load_callable_from_spec", "load_handlers"]
