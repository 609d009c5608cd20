"""Convert provider byte streams into the canonical StreamEvent sequence.

Providers deliver streamed output as raw bytes chunked by the transport,
not aligned to message boundaries. SSE-framed providers put one JSON
payload in the ``data:`` lines of each event; raw providers send text
chunks directly. Either way the client sees ``text`` events followed by
exactly one terminal ``done`` or ``error`` event.
"""
import codecs
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncGenerator, AsyncIterator, Optional, Protocol

from backend.errors import ProviderCallFailed, StreamProtocolError

logger = logging.getLogger(__name__)

EVENT_DELIMITER = "\n\n"
DATA_PREFIX = "data:"
ANSWER_FIELDS = ("answer", "text")

PROTOCOL_ERROR_MESSAGE = "Error while processing the response stream"
TRANSPORT_ERROR_MESSAGE = "Upstream stream error"


class StreamFraming(str, enum.Enum):
    SSE = "sse"
    RAW = "raw"


@dataclass(frozen=True)
class StreamEvent:
    """One unit of normalized streamed output."""
    text: Optional[str] = None
    done: bool = False
    error: Optional[str] = None

    @classmethod
    def text_event(cls, text: str) -> "StreamEvent":
        return cls(text=text)

    @classmethod
    def done_event(cls) -> "StreamEvent":
        return cls(done=True)

    @classmethod
    def error_event(cls, message: str) -> "StreamEvent":
        return cls(error=message)

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None

    def to_dict(self) -> dict:
        if self.done:
            return {"done": True}
        if self.error is not None:
            return {"error": self.error}
        return {"text": self.text}


class ByteSource(Protocol):
    def __aiter__(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


def _utf8_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="strict")


@dataclass
class SSEParserState:
    """Per-stream parser state: the undelimited tail of the stream."""
    pending: str = ""
    decoder: codecs.IncrementalDecoder = field(default_factory=_utf8_decoder)
    finished: bool = False


def decode_chunk(decoder: codecs.IncrementalDecoder, chunk: bytes) -> str:
    try:
        return decoder.decode(chunk)
    except UnicodeDecodeError as e:
        raise StreamProtocolError(f"Undecodable stream chunk: {e}") from e


def extract_data(raw_event: str) -> str:
    """Join the payloads of all ``data:`` lines of one event."""
    data = ""
    for line in raw_event.split("\n"):
        line = line.strip()
        if line.startswith(DATA_PREFIX):
            data += line[len(DATA_PREFIX):].strip()
    return data


def payload_events(payload: str) -> list[StreamEvent]:
    """Interpret one reconstructed ``data`` payload.

    Payloads that are not a JSON object are passed through verbatim as
    text, since some providers interleave plain text with JSON events.
    """
    try:
        parsed = json.loads(payload)
    except ValueError:
        return [StreamEvent.text_event(payload)]
    if not isinstance(parsed, dict):
        return [StreamEvent.text_event(payload)]

    events = []
    for name in ANSWER_FIELDS:
        answer = parsed.get(name)
        if answer:
            text = answer if isinstance(answer, str) else json.dumps(answer, ensure_ascii=False)
            events.append(StreamEvent.text_event(text))
            break
    if parsed.get("done"):
        events.append(StreamEvent.done_event())
    return events


def feed_sse_chunk(state: SSEParserState, chunk: bytes) -> list[StreamEvent]:
    """Consume one transport chunk and return the events it completes."""
    if state.finished:
        return []

    buffer = (state.pending + decode_chunk(state.decoder, chunk)).replace("\r\n", "\n")
    *complete, state.pending = buffer.split(EVENT_DELIMITER)

    events: list[StreamEvent] = []
    for raw_event in complete:
        if not raw_event.strip():
            continue
        data = extract_data(raw_event)
        if not data:
            continue
        try:
            parsed_events = payload_events(data)
        except Exception as e:
            raise StreamProtocolError(f"Unprocessable stream event: {type(e).__name__}") from e
        for event in parsed_events:
            events.append(event)
            if event.done:
                state.finished = True
                state.pending = ""
                return events
    return events


def feed_raw_chunk(decoder: codecs.IncrementalDecoder, chunk: bytes) -> list[StreamEvent]:
    text = decode_chunk(decoder, chunk)
    return [StreamEvent.text_event(text)] if text else []


async def normalize_stream(
    source: ByteSource,
    framing: StreamFraming = StreamFraming.SSE,
    provider: str = "",
) -> AsyncGenerator[StreamEvent, None]:
    """Yield canonical events for one provider stream.

    The source is closed when the generator finishes, fails, or is closed
    early by its consumer, so a client disconnect releases the upstream
    response.
    """
    state = SSEParserState()
    try:
        try:
            async for chunk in source:
                if framing is StreamFraming.SSE:
                    events = feed_sse_chunk(state, chunk)
                else:
                    events = feed_raw_chunk(state.decoder, chunk)
                for event in events:
                    yield event
                    if event.is_terminal:
                        return
        except StreamProtocolError:
            logger.error("Malformed stream from %s", provider or "provider", exc_info=True)
            yield StreamEvent.error_event(PROTOCOL_ERROR_MESSAGE)
            return
        except ProviderCallFailed as e:
            logger.error("Upstream stream failed: %s", e)
            yield StreamEvent.error_event(TRANSPORT_ERROR_MESSAGE)
            return
        except Exception:
            logger.error("Stream from %s failed unexpectedly", provider or "provider", exc_info=True)
            yield StreamEvent.error_event(PROTOCOL_ERROR_MESSAGE)
            return

        if state.pending.strip():
            logger.debug(
                "Discarding %d undelimited trailing chars from %s",
                len(state.pending), provider or "provider",
            )
        yield StreamEvent.done_event()
    finally:
        await source.aclose()
