"""
Optional Langfuse spans around harvest runs.

Without credentials or the langfuse SDK every helper here is a no-op, so the
pipeline can call them unconditionally.
"""

from __future__ import annotations

from contextlib import contextmanager
import json
import logging
import os
from typing import Any, Iterator

from .config import LangfuseConfig

logger = logging.getLogger("feed_harvest.tracing")

_client: Any | None = None
_max_chars: int = LangfuseConfig().max_text_chars


def setup_langfuse(cfg: LangfuseConfig) -> None:
    """Create the Langfuse client when tracing is enabled and configured."""
    global _client, _max_chars  # noqa: PLW0603
    _client = None
    _max_chars = cfg.max_text_chars
    if not cfg.enabled:
        return

    public_key = cfg.public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = cfg.secret_key or os.getenv("LANGFUSE_SECRET_KEY")
    if not (public_key and secret_key):
        logger.debug("Langfuse keys missing, tracing disabled")
        return
    try:
        from langfuse import Langfuse  # type: ignore
    except ImportError:
        logger.warning("langfuse is not installed, tracing disabled (pip install feed-harvest[tracing])")
        return

    _client = Langfuse(
        public_key=public_key,
        secret_key=secret_key,
        host=cfg.host or os.getenv("LANGFUSE_HOST"),
        environment=cfg.environment or os.getenv("LANGFUSE_ENVIRONMENT"),
        release=cfg.release or os.getenv("LANGFUSE_RELEASE"),
    )


@contextmanager
def start_span(name: str, input_value: Any | None = None) -> Iterator[Any | None]:
    """Open a span as the current span; yields None when tracing is off."""
    client = _client
    if client is None:
        yield None
        return

    try:
        span_cm = client.start_as_current_span(name=name, input=_payload(input_value))
        span = span_cm.__enter__()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Could not start span %s: %s", name, exc)
        yield None
        return

    try:
        yield span
    finally:
        try:
            span_cm.__exit__(None, None, None)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Could not end span %s: %s", name, exc)


def set_span_output(span: Any | None, output_value: Any) -> None:
    if span is not None:
        _update(span, output=_payload(output_value))


def record_span_error(span: Any | None, message: str) -> None:
    if span is not None:
        _update(span, level="ERROR", status_message=message)


def flush() -> None:
    """Send buffered spans before the process exits."""
    if _client is None:
        return
    try:
        _client.flush()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Langfuse flush failed: %s", exc)


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    if len(text) > _max_chars:
        return text[:_max_chars] + "...(truncated)"
    return text


def _update(span: Any, **fields: Any) -> None:
    try:
        span.update(**fields)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Span update failed: %s", exc)
