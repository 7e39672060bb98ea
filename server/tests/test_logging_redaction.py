# pyright: reportMissingImports=false

from __future__ import annotations

import logging

from rpstudio.core.logging import RedactingFormatter, RequestIdFilter, request_context


def _render(msg: str, *args: object) -> str:
    record = logging.LogRecord(
        name="rpstudio.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    _ = RequestIdFilter().filter(record)
    return RedactingFormatter(fmt="[rid=%(request_id)s] %(message)s").format(record)


def test_bearer_tokens_are_redacted() -> None:
    out = _render("Authorization: Bearer abc.def.ghi")
    assert "abc.def.ghi" not in out
    assert "[REDACTED]" in out


def test_api_key_fields_are_redacted() -> None:
    out = _render('payload={"apiKey": "plain-value-123", "name": "ok"}')
    assert "plain-value-123" not in out
    assert '"apiKey": "[REDACTED len=15]"' in out
    assert '"name": "ok"' in out

    out = _render("request %s", {"api_key": "plain-value-123"})
    assert "plain-value-123" not in out

    out = _render("storing plain_key=plain-value-123 for user 7")
    assert "plain-value-123" not in out
    assert "for user 7" in out


def test_provider_keys_and_ciphertexts_are_redacted() -> None:
    out = _render("upstream rejected sk-or-v1-0123456789abcdef")
    assert "0123456789abcdef" not in out
    assert "[REDACTED_KEY]" in out

    out = _render("row value v1:QUJDREVGR0hJSktMTU5PUFFSU1RVVldY")
    assert "QUJDREVGR0hJSktMTU5PUFFSU1RVVldY" not in out
    assert "[REDACTED_CIPHERTEXT]" in out


def test_request_id_defaults_and_scopes() -> None:
    assert _render("hello").startswith("[rid=-]")

    with request_context("req-42"):
        assert _render("hello").startswith("[rid=req-42]")

    assert _render("hello").startswith("[rid=-]")


def test_plain_messages_pass_through() -> None:
    assert _render("Copied scenario %s -> %s", 3, 4) == "[rid=-] Copied scenario 3 -> 4"
