"""Reusable Streamlit UI primitives."""

from __future__ import annotations

from typing import Mapping, Sequence

import streamlit as st

from models import Attachment, ChatMessage

ASSISTANT_NAME = "AVO AI"
AVATARS = {"assistant": "🥑", "user": "🙂"}


def format_remaining(template: str, count: int) -> str:
    return template.replace("{count}", str(max(0, int(count))))


def render_message(message: ChatMessage, *, st_module=st) -> None:
    """Render a single chat bubble."""

    with st_module.chat_message(message.role, avatar=AVATARS.get(message.role)):
        if message.role == "assistant":
            st_module.caption(ASSISTANT_NAME)
        st_module.markdown(message.content)


def render_history(messages: Sequence[ChatMessage], *, st_module=st) -> None:
    for message in messages:
        render_message(message, st_module=st_module)


def render_remaining_badge(template: str, count: int, *, st_module=st) -> None:
    colour = "green" if count > 0 else "red"
    st_module.markdown(f":{colour}[●] {format_remaining(template, count)}")


def render_donate_button(label: str, url: str, *, st_module=st) -> None:
    st_module.link_button(f"☕ {label}", url)


def render_attachments(
    documents: Sequence[Attachment],
    strings: Mapping[str, str],
    *,
    key_prefix: str = "attachment",
    st_module=st,
) -> int | None:
    """List attached files; return the index the user asked to remove."""

    if not documents:
        return None
    st_module.caption(strings["uploaded_files"])
    removed: int | None = None
    for index, doc in enumerate(documents):
        name_col, action_col = st_module.columns([5, 1])
        icon = "🖼️" if doc.is_image else "📄"
        name_col.markdown(f"{icon} {doc.name}")
        if doc.is_image and doc.preview:
            name_col.image(doc.preview, width=120)
        if action_col.button(strings["remove_file"], key=f"{key_prefix}_{index}"):
            removed = index
    return removed
