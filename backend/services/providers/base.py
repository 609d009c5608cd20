import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from backend.errors import ProviderCallFailed
from backend.models.schemas import ChatRequest, Conversation
from backend.services.stream_normalizer import StreamFraming

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class ProviderStream:
    """Handle to a live upstream response body.

    Iterating yields raw byte chunks as the transport delivers them;
    transport errors surface as ProviderCallFailed. ``aclose`` releases the
    upstream connection and may be called more than once.
    """

    def __init__(self, provider: str, response: httpx.Response):
        self.provider = provider
        self._response = response
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise ProviderCallFailed(self.provider, e) from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


@dataclass
class ChatResult:
    """Either a complete payload or a live stream, never both."""
    payload: Any = None
    stream: Optional[ProviderStream] = None

    def __post_init__(self):
        if (self.payload is None) == (self.stream is None):
            raise ValueError("ChatResult needs exactly one of payload or stream")

    @property
    def is_stream(self) -> bool:
        return self.stream is not None


class BaseProviderAdapter(ABC):
    """Uniform capability set implemented once per provider.

    Credentials and base URL are fixed at construction. All HTTP goes
    through one client per adapter with a bounded timeout.
    """

    name: str = "unknown"
    default_framing: StreamFraming = StreamFraming.RAW

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        stream: bool = True,
        stream_framing: Optional[StreamFraming] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self.stream = stream
        self.stream_framing = StreamFraming(stream_framing or self.default_framing)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResult:
        """Send a chat message; stream when the adapter is configured to."""
        ...

    @abstractmethod
    async def get_history(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        ...

    @abstractmethod
    async def list_conversations(self, user_id: str, assistant_id: str) -> list[Conversation]:
        ...

    @abstractmethod
    async def delete_conversation(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        ...

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- transport helpers ---

    async def _request(
        self,
        method: str,
        path: str,
        accept_statuses: tuple[int, ...] = (),
        **kwargs,
    ) -> Any:
        """Issue one call and return its decoded JSON body.

        Non-2xx responses raise ProviderCallFailed unless their status is in
        ``accept_statuses``, in which case the body is relayed as-is.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
            if response.status_code not in accept_statuses:
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("%s %s %s failed: %s", self.name, method, path, e)
            raise ProviderCallFailed(self.name, e) from e
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ProviderCallFailed(self.name, e) from e

    def _list_items(self, data: Any) -> list[dict]:
        """Records of a listing response: a bare array or a ``data`` array."""
        items = data.get("data") if isinstance(data, dict) else data
        if items is None:
            return []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            error = ValueError(f"Unexpected listing shape: {type(data).__name__}")
            logger.error("%s listing returned %s", self.name, error)
            raise ProviderCallFailed(self.name, error)
        return items

    async def _open_stream(self, method: str, path: str, **kwargs) -> ProviderStream:
        """Start a streaming call; the status is checked before returning."""
        request = self._client.build_request(method, path, **kwargs)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error("%s stream %s failed: %s", self.name, path, e)
            raise ProviderCallFailed(self.name, e) from e

        if response.is_error:
            await response.aread()
            await response.aclose()
            logger.error(
                "%s stream %s returned %d: %s",
                self.name, path, response.status_code, response.text[:500],
            )
            error = httpx.HTTPStatusError(
                f"HTTP {response.status_code}", request=request, response=response
            )
            raise ProviderCallFailed(self.name, error)
        return ProviderStream(self.name, response)

    async def _send_chat(self, path: str, payload: dict) -> ChatResult:
        if self.stream:
            return ChatResult(stream=await self._open_stream("POST", path, json=payload))
        return ChatResult(payload=await self._request("POST", path, json=payload))

    @staticmethod
    def _files_payload(request: ChatRequest) -> list[dict]:
        return [f.model_dump(by_alias=True) for f in request.files]

    @staticmethod
    def assistant_suffix(assistant_id: Optional[str]) -> str:
        """Provider-internal part of an assistant identifier."""
        if not assistant_id or ":" not in assistant_id:
            return ""
        return assistant_id.split(":", 1)[1]
