"""Tests for opaque keyset cursors."""

import base64

from src.p2p_common.pagination import cursor_decode, cursor_encode


def test_cursor_is_opaque_and_decodes() -> None:
    cursor = cursor_encode(42)
    assert cursor != "42"
    assert cursor_decode(cursor) == 42


def test_none_cursor() -> None:
    assert cursor_decode(None) is None


def test_garbage_cursor_returns_none() -> None:
    assert cursor_decode("not-base64!!") is None
    assert cursor_decode(base64.urlsafe_b64encode(b"[1, 2]").decode()) is None
    assert cursor_decode(base64.urlsafe_b64encode(b'{"x": 1}').decode()) is None
