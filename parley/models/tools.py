"""Tool declarations in each provider's request format.

``tools`` is a list of tool names (``web_search``, ``file_search``,
``code_interpreter``, ``functions``) or ready-made tool dicts. ``tool_config``
carries the details::

    {
        "file_search": {"vector_store_ids": ["vs_1"]},
        "functions": [{"name": "get_weather", "description": "...", "parameters": {...}}],
    }
"""

from __future__ import annotations

from typing import Any

WEB_SEARCH_NAMES = {"web_search", "web_search_preview"}


def _function_specs(tool_config: dict[str, Any] | None) -> list[dict[str, Any]]:
    functions = (tool_config or {}).get("functions") or []
    return [fn for fn in functions if isinstance(fn, dict) and fn.get("name")]


def has_web_search(tools: list[Any] | None) -> bool:
    for tool in tools or []:
        if isinstance(tool, str) and tool in WEB_SEARCH_NAMES:
            return True
        if isinstance(tool, dict) and tool.get("type") in WEB_SEARCH_NAMES:
            return True
    return False


def format_responses_tools(
    tools: list[Any] | None,
    tool_config: dict[str, Any] | None,
    *,
    max_vector_store_ids: int = 2,
) -> list[dict[str, Any]]:
    """Tools in Responses API shape (flat function declarations)."""
    formatted: list[dict[str, Any]] = []
    for tool in tools or []:
        if isinstance(tool, dict):
            tool = dict(tool)
            if tool.get("type") == "file_search" and isinstance(tool.get("vector_store_ids"), list):
                tool["vector_store_ids"] = tool["vector_store_ids"][:max_vector_store_ids]
            formatted.append(tool)
            continue
        name = str(tool)
        if name in WEB_SEARCH_NAMES:
            formatted.append({"type": "web_search_preview"})
        elif name == "file_search":
            file_search: dict[str, Any] = {"type": "file_search"}
            store_ids = list(((tool_config or {}).get("file_search") or {}).get("vector_store_ids") or [])
            if store_ids:
                file_search["vector_store_ids"] = store_ids[:max_vector_store_ids]
            formatted.append(file_search)
        elif name == "code_interpreter":
            formatted.append({"type": "code_interpreter", "container": {"type": "auto"}})
        elif name == "functions":
            for fn in _function_specs(tool_config):
                declaration: dict[str, Any] = {
                    "type": "function",
                    "name": fn["name"],
                    "description": fn.get("description") or "",
                    "parameters": fn.get("parameters") or {},
                }
                if isinstance(fn.get("strict"), bool):
                    declaration["strict"] = fn["strict"]
                formatted.append(declaration)
        else:
            formatted.append({"type": name})
    return formatted


def format_chat_tools(tools: list[Any] | None, tool_config: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Function tools in chat-completions shape; built-in tools do not apply."""
    formatted: list[dict[str, Any]] = []
    for tool in tools or []:
        if isinstance(tool, dict) and tool.get("type") == "function":
            formatted.append(dict(tool))
        elif tool == "functions":
            for fn in _function_specs(tool_config):
                formatted.append(
                    {
                        "type": "function",
                        "function": {
                            "name": fn["name"],
                            "description": fn.get("description") or "",
                            "parameters": fn.get("parameters") or {"type": "object", "properties": {}},
                        },
                    }
                )
    return formatted
