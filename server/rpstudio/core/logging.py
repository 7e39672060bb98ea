from __future__ import annotations

import contextvars
import logging
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing_extensions import override


request_id_ctx_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    @override
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = request_id_ctx_var.get()
        return True


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    token = request_id_ctx_var.set(request_id)
    try:
        yield
    finally:
        request_id_ctx_var.reset(token)


_RE_BEARER = re.compile(
    r"(?i)(authorization\s*[:=]\s*bearer\s+)([a-z0-9._~+/=-]+)",
)

# Plaintext provider keys and the stored ciphertext form must never reach the log stream.
_RE_JSON_API_KEY = re.compile(
    r'(?i)("(?:api_?key|apiKey|encrypted_?key|encryptedKey)"\s*:\s*")([^"]+)(")',
)
_RE_PY_API_KEY = re.compile(
    r"(?i)('(?:api_?key|encrypted_?key)'\s*:\s*')([^']+)(')",
)
_RE_KV_API_KEY = re.compile(
    r"(?i)\b(api_?key|encrypted_?key|plain_?key)\b\s*=\s*(['\"]?)([^'\"\s,;)]+)\2",
)
_RE_SK_KEY = re.compile(r"\bsk-[A-Za-z0-9_-]{8,}")
_RE_CIPHERTEXT = re.compile(r"\bv1:[A-Za-z0-9_-]{16,}")


def _redact_value(raw: str) -> str:
    return f"[REDACTED len={len(raw)}]"


class RedactingFormatter(logging.Formatter):
    @override
    def format(self, record: logging.LogRecord) -> str:
        out = super().format(record)

        out = _RE_BEARER.sub(r"\1[REDACTED]", out)

        out = _RE_JSON_API_KEY.sub(
            lambda m: f"{m.group(1)}{_redact_value(m.group(2))}{m.group(3)}", out
        )
        out = _RE_PY_API_KEY.sub(
            lambda m: f"{m.group(1)}{_redact_value(m.group(2))}{m.group(3)}", out
        )
        out = _RE_KV_API_KEY.sub(lambda m: f"{m.group(1)}={_redact_value(m.group(3))}", out)

        out = _RE_SK_KEY.sub("[REDACTED_KEY]", out)
        out = _RE_CIPHERTEXT.sub("[REDACTED_CIPHERTEXT]", out)

        return out


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        RedactingFormatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] [rid=%(request_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    # Avoid duplicate handlers when the process re-initialises.
    root.handlers = [handler]
