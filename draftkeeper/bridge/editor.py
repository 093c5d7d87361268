"""Request/response bridge to the host's rich-text editor surface."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Protocol

from loguru import logger

from draftkeeper.core.errors import EditorBridgeError
from draftkeeper.core.models import EditorResponse

ACTION_GET_STATE = "getEditorState"
ACTION_SET_STATE = "setEditorState"


class EditorChannel(Protocol):
    """Transport that carries request envelopes into the host page."""

    async def send(self, envelope: dict[str, Any]) -> None:
        """Deliver one request envelope."""


class EditorBridge:
    """Correlates editor requests with their responses by request id.

    The host delivers each response through :meth:`resolve`. A request that is not
    answered within ``timeout_ms`` resolves to ``EditorResponse.timeout()`` instead
    of raising, so callers can abort and leave prior state untouched.
    """

    def __init__(self, channel: EditorChannel, *, timeout_ms: int = 2000) -> None:
        self._channel = channel
        self._timeout_s = max(0.001, timeout_ms / 1000.0)
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}

    async def read_state(self) -> EditorResponse:
        response = await self._request(ACTION_GET_STATE, {})
        if not response.success:
            logger.debug(f"Editor read failed: {response.error}")
        return response

    async def write_state(self, rich_content: Any) -> EditorResponse:
        response = await self._request(ACTION_SET_STATE, {"editorState": rich_content})
        if not response.success:
            logger.debug(f"Editor write failed: {response.error}")
        return response

    async def _request(self, action: str, payload: dict[str, Any]) -> EditorResponse:
        request_id = uuid.uuid4().hex
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        envelope = {
            "type": "editor-request",
            "action": action,
            "requestId": request_id,
            "payload": payload,
        }

        try:
            # one deadline covers delivery and the reply
            async with asyncio.timeout(self._timeout_s):
                await self._channel.send(envelope)
                result = await future
        except TimeoutError:
            logger.warning(f"Editor request {action} timed out after {self._timeout_s:.1f}s")
            return EditorResponse.timeout()
        except EditorBridgeError as e:
            return EditorResponse.failure(e.code)
        except (ConnectionError, OSError) as e:
            logger.warning(f"Editor channel send failed for {action}: {e}")
            return EditorResponse.failure("channel_error")
        finally:
            self._pending.pop(request_id, None)

        return EditorResponse(
            success=True,
            plain_text=str(result.get("plainText") or ""),
            rich_content=result.get("richContent"),
        )

    def resolve(self, message: dict[str, Any]) -> bool:
        """Deliver one response envelope. Returns False for unknown or late ids."""
        request_id = str(message.get("requestId") or "")
        future = self._pending.get(request_id)
        if not future or future.done():
            return False

        if bool(message.get("ok")):
            result = message.get("result")
            future.set_result(result if isinstance(result, dict) else {})
            return True

        error = message.get("error") if isinstance(message.get("error"), dict) else {}
        code = str(error.get("code") or "ERR_EDITOR")
        text = str(error.get("message") or "Editor request failed")
        future.set_exception(EditorBridgeError(code, text))
        return True

    def fail_pending(self, reason: str) -> None:
        """Fail every outstanding request, e.g. when the host page goes away."""
        for future in self._pending.values():
            if not future.done():
                future.set_exception(EditorBridgeError("ERR_CLOSED", reason))
        self._pending.clear()

    @property
    def pending_count(self) -> int:
        return len(self._pending)
