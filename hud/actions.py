"""Action handler registry for user-triggered operations.

Handlers are coroutines: they receive a payload dict and the dispatcher (for
access to the sources), perform one external operation and return a short
message describing what happened. Failures are raised as SourceError.

Usage:
    from hud.actions import register_action_handler

    @register_action_handler("my_action")
    async def handle_my_action(payload: dict, dispatcher) -> str:
        ...
        return "Did the thing"
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import RateLimitError, SourceError
from .event_log import EVENT

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Dict[str, Any], "ActionDispatcher"], Awaitable[str]]


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: str


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

# Maps action_type string -> handler coroutine function
_HANDLER_REGISTRY: Dict[str, ActionHandler] = {}


def register_action_handler(action_type: str) -> Callable[[ActionHandler], ActionHandler]:
    """Decorator to register a coroutine function as an action handler.

    Args:
        action_type: The action_type string this handler serves.

    Returns:
        Decorator that registers the function and returns it unchanged.
    """
    def decorator(fn: ActionHandler) -> ActionHandler:
        _HANDLER_REGISTRY[action_type] = fn
        return fn

    return decorator


def get_handler(action_type: str) -> Optional[ActionHandler]:
    """Look up a handler by action_type, or None if none is registered."""
    return _HANDLER_REGISTRY.get(action_type)


def action_types() -> list[str]:
    return sorted(_HANDLER_REGISTRY)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class ActionDispatcher:
    """Runs actions and reports the outcome.

    On success the result is logged at event level and on_success is awaited
    (the app wires this to a forced refresh). On failure the error is logged
    and nothing else happens.
    """

    def __init__(
        self,
        github: Any,
        docker: Any = None,
        on_success: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self.github = github
        self.docker = docker
        self.on_success = on_success

    async def dispatch(self, action_type: str, payload: Dict[str, Any]) -> ActionResult:
        handler = get_handler(action_type)
        if handler is None:
            logger.error("Unknown action %r", action_type)
            return ActionResult(False, f"Unknown action: {action_type}")

        try:
            message = await handler(payload, self)
        except (SourceError, RateLimitError) as e:
            logger.error("%s failed: %s", action_type, e)
            return ActionResult(False, str(e))
        except KeyError as e:
            logger.error("%s failed: missing %s", action_type, e)
            return ActionResult(False, f"Missing {e} for {action_type}")
        except (ValueError, TypeError, OSError) as e:
            logger.error("%s failed: %s", action_type, e)
            return ActionResult(False, f"{action_type} failed: {e}")

        logger.log(EVENT, "%s", message)
        if self.on_success is not None:
            await self.on_success()
        return ActionResult(True, message)


# ---------------------------------------------------------------------------
# Built-in handlers
# ---------------------------------------------------------------------------


def _require_docker(dispatcher: ActionDispatcher) -> Any:
    if dispatcher.docker is None:
        raise SourceError("Container services are not enabled", source="docker")
    return dispatcher.docker


@register_action_handler("open_url")
async def _handle_open_url(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    """Open a run or PR page in the browser.

    Expects:
        payload['url']
    """
    url = payload["url"]
    if not url:
        raise SourceError("Nothing to open: no URL", source="browser")
    opened = await asyncio.to_thread(webbrowser.open, url)
    if not opened:
        raise SourceError(f"Could not open a browser for {url}", source="browser")
    return f"Opened {url}"


@register_action_handler("cancel_run")
async def _handle_cancel_run(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    """Cancel a workflow run.

    Expects:
        payload['repo']: owner/name
        payload['run_id']
    """
    return await dispatcher.github.cancel_run(payload["repo"], int(payload["run_id"]))


@register_action_handler("merge_pull_request")
async def _handle_merge_pull_request(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    """Merge a pull request.

    Expects:
        payload['repo']: owner/name
        payload['number']
        payload['method']: optional, one of merge/squash/rebase
    """
    return await dispatcher.github.merge_pull_request(
        payload["repo"], int(payload["number"]), payload.get("method", "merge")
    )


@register_action_handler("restart_service")
async def _handle_restart_service(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    return await _require_docker(dispatcher).restart_service(payload["compose_file"], payload["service"])


@register_action_handler("stop_service")
async def _handle_stop_service(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    return await _require_docker(dispatcher).stop_service(payload["compose_file"], payload["service"])


@register_action_handler("recreate_service")
async def _handle_recreate_service(payload: Dict[str, Any], dispatcher: ActionDispatcher) -> str:
    return await _require_docker(dispatcher).recreate_service(payload["compose_file"], payload["service"])
