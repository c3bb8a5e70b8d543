"""Streamlit helpers shared by the chat surface."""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import streamlit as st

logger = logging.getLogger(__name__)

BROWSER_COOKIE = "avo_browser"
BROWSER_PARAM = "client"
_SESSION_KEY = "browser_id"
_BROWSER_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
_RERUN_FN = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)


def _valid(value) -> bool:
    return isinstance(value, str) and bool(_BROWSER_ID_PATTERN.match(value))


def _context_value(st_module, name: str):
    try:
        return getattr(st_module.context, name)
    except AttributeError:
        return None


def browser_id(*, st_module=st, remember: Callable[[str, str], None] | None = None) -> str:
    """Return a stable id shared by every tab of this browser.

    The id lives in a cookie sent with each new session. Before the cookie
    exists the ``client`` query parameter is used; ``remember`` is then asked
    to store a cookie for later tabs.
    """

    state = st_module.session_state
    cached = state.get(_SESSION_KEY)
    if _valid(cached):
        return cached

    cookies = _context_value(st_module, "cookies") or {}
    value = cookies.get(BROWSER_COOKIE)
    if not _valid(value):
        value = st_module.query_params.get(BROWSER_PARAM)
        if not _valid(value):
            value = uuid.uuid4().hex
        st_module.query_params[BROWSER_PARAM] = value
        if remember is not None:
            remember(BROWSER_COOKIE, value)
    state[_SESSION_KEY] = value
    return value


def viewer_clock(*, st_module=st) -> Callable[[], datetime]:
    """Return ``now`` in the browser's time zone, or server local time."""

    name = _context_value(st_module, "timezone")
    if name:
        try:
            zone = ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown browser time zone %r; using server time", name)
        else:
            return lambda: datetime.now(zone)
    return datetime.now


def accept_language(*, st_module=st) -> str | None:
    headers = _context_value(st_module, "headers")
    value = headers.get("Accept-Language") if headers else None
    return str(value) if value else None


def trigger_rerun() -> None:
    if _RERUN_FN is not None:
        _RERUN_FN()


__all__ = ["BROWSER_COOKIE", "BROWSER_PARAM", "accept_language", "browser_id", "trigger_rerun", "viewer_clock"]
