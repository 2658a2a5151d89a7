"""
Response stream encoding.

Two wire formats for the answer stream:
- data: the AI SDK data stream protocol read by the web frontend's
  chat hook (text parts `0:`, error part `3:`, finish part `d:`)
- text: raw text; a failure appends a final `[error]` line
"""

import json
import logging
from typing import AsyncIterator, Dict

from ..rag.errors import GenerationError

logger = logging.getLogger(__name__)

DATA_STREAM_HEADERS = {"x-vercel-ai-data-stream": "v1"}
MEDIA_TYPE = "text/plain; charset=utf-8"


def text_part(text: str) -> str:
    return f"0:{json.dumps(text)}\n"


def error_part(message: str) -> str:
    return f"3:{json.dumps(message)}\n"


def finish_part(reason: str) -> str:
    return f"d:{json.dumps({'finishReason': reason})}\n"


def stream_headers(protocol: str) -> Dict[str, str]:
    return dict(DATA_STREAM_HEADERS) if protocol == "data" else {}


async def encode_stream(chunks: AsyncIterator[str], protocol: str = "data") -> AsyncIterator[str]:
    """
    Encode answer chunks for the HTTP body.

    A GenerationError ends the stream with a terminal error part.
    Chunks already sent are not retracted.
    """
    try:
        async for chunk in chunks:
            yield text_part(chunk) if protocol == "data" else chunk
    except GenerationError as e:
        logger.error(f"Answer stream failed: {e.message}")
        if protocol == "data":
            yield error_part(e.message)
        else:
            yield f"\n[error] {e.message}\n"
        return
    finally:
        # Client disconnects close this generator; close the provider stream too
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    if protocol == "data":
        yield finish_part("stop")
