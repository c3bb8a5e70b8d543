"""Streamlit chat client for AVO AI, the Canary Islands assistant."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta

import extra_streamlit_components as stx
import streamlit as st

from app_settings import AppSettings, load_settings
from completion_client import CompletionClient
from i18n import LANGUAGE_NAMES, TRANSLATIONS, detect_language, get_strings
from models import ChatMessage
from plantnet_client import PlantNetClient
from quota_store import KeyValueStore, MemoryStore, ScopedStore, StorageError, open_store
from services.attachment_service import (
    AttachmentError,
    analyze_image,
    check_capacity,
    ingest_document,
    load_classifier,
)
from services.chat_service import ChatService, TurnResult, plant_request
from services.quota_service import QuotaTracker
from services.speech_service import TranscriptionError, create_client, transcribe
from ui_components import (
    AVATARS,
    render_attachments,
    render_donate_button,
    render_history,
    render_message,
    render_remaining_badge,
)
from utils_streamlit import accept_language, browser_id, trigger_rerun, viewer_clock


logger = logging.getLogger(__name__)

PREFERRED_LANGUAGE_KEY = "preferred_language"
DOCUMENT_EXTENSIONS = ["txt", "md", "pdf"]
IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp"]
BROWSER_COOKIE_DAYS = 365


@st.cache_resource
def _shared_store(backend: str, path: str) -> KeyValueStore:
    try:
        return open_store(backend, path)
    except StorageError:
        logger.exception("Quota store unavailable; counting in memory until restart")
        return MemoryStore()


@st.cache_resource
def _shared_classifier(path: str | None):
    try:
        return load_classifier(path)
    except (ImportError, AttributeError, ValueError):
        logger.exception("Could not load image classifier %s", path)
        return None


def _remember_cookie(name: str, value: str) -> None:
    cookies = stx.CookieManager(key="avo_cookies")
    cookies.set(name, value, expires_at=datetime.now() + timedelta(days=BROWSER_COOKIE_DAYS), key="avo_cookie_set")


def _browser_store(settings: AppSettings) -> KeyValueStore:
    return ScopedStore(
        _shared_store(settings.quota_backend, settings.quota_store_path),
        browser_id(remember=_remember_cookie),
    )


def _initial_language(store: KeyValueStore) -> str:
    try:
        saved = store.get(PREFERRED_LANGUAGE_KEY)
    except StorageError as exc:
        logger.warning("Could not read preferred language: %s", exc)
        saved = None
    if saved in TRANSLATIONS:
        return saved
    return detect_language(accept_language())


def _init_session_state(store: KeyValueStore) -> None:
    if "messages" not in st.session_state:
        st.session_state.messages = []
    if "documents" not in st.session_state:
        st.session_state.documents = []
    if "processed_uploads" not in st.session_state:
        st.session_state.processed_uploads = set()
    if "language" not in st.session_state:
        st.session_state.language = _initial_language(store)
    if "loading" not in st.session_state:
        st.session_state.loading = False
    if "last_audio_digest" not in st.session_state:
        st.session_state.last_audio_digest = None
    if "pending_prompt" not in st.session_state:
        st.session_state.pending_prompt = None


def _append(message: ChatMessage) -> None:
    st.session_state.messages.append(message)


def _save_language(store: KeyValueStore) -> None:
    try:
        store.set(PREFERRED_LANGUAGE_KEY, st.session_state.language)
    except StorageError as exc:
        logger.warning("Could not save preferred language: %s", exc)


def _build_service(settings: AppSettings, tracker: QuotaTracker) -> ChatService:
    plants = PlantNetClient.from_settings(settings) if settings.plantnet_api_key else None
    return ChatService(
        completion=CompletionClient.from_settings(settings),
        quota=tracker,
        plants=plants,
        stream=settings.stream_completions,
    )


def _is_new_upload(uploaded) -> bool:
    upload_id = getattr(uploaded, "file_id", None) or f"{uploaded.name}:{uploaded.size}"
    if upload_id in st.session_state.processed_uploads:
        return False
    st.session_state.processed_uploads.add(upload_id)
    return True


def _handle_document(uploaded, strings) -> None:
    try:
        check_capacity(st.session_state.documents, message=strings["max_files_reached"])
        attachment = ingest_document(uploaded.name, uploaded.type, uploaded.getvalue())
    except AttachmentError as exc:
        _append(ChatMessage("assistant", str(exc)))
        return
    st.session_state.documents.append(attachment)
    _append(
        ChatMessage(
            "assistant",
            f"File \"{attachment.name}\" has been successfully uploaded and will be used as context for our conversation.",
        )
    )


def _handle_image(uploaded, classifier, strings) -> None:
    try:
        check_capacity(st.session_state.documents, message=strings["max_files_reached"])
        with st.spinner(strings["analyzing"]):
            attachment = analyze_image(uploaded.name, uploaded.type, uploaded.getvalue(), classifier)
    except AttachmentError as exc:
        _append(ChatMessage("assistant", str(exc)))
        return
    st.session_state.documents.append(attachment)
    _append(ChatMessage("assistant", f"Image \"{attachment.name}\" has been analyzed. I detected: {attachment.analysis}"))


def _handle_plant(service: ChatService, uploaded, strings) -> None:
    _append(plant_request(uploaded.name))
    with st.spinner(strings["analyzing_plant"]):
        result = service.identify_plant(
            uploaded.getvalue(),
            uploaded.name,
            uploaded.type or "image/jpeg",
            language=st.session_state.language,
        )
    _append(result.message)


def _handle_audio(settings: AppSettings, audio) -> None:
    audio_bytes = audio.getvalue()
    digest = hashlib.sha1(audio_bytes).hexdigest()
    if digest == st.session_state.last_audio_digest:
        return
    st.session_state.last_audio_digest = digest
    client = create_client(settings.openai_api_key)
    if client is None:
        st.warning("OpenAI API key missing.")
        return
    try:
        text = transcribe(audio_bytes, language=st.session_state.language, client=client)
    except TranscriptionError as exc:
        st.error(str(exc))
        return
    st.session_state.pending_prompt = text


def _handle_submit(service: ChatService, text: str, strings) -> TurnResult | None:
    cleaned = (text or "").strip()
    if not cleaned or st.session_state.loading:
        return None
    if service.quota.questions.has_reached_limit():
        _append(ChatMessage("assistant", strings["daily_limit_reached"]))
        return None

    history = list(st.session_state.messages)
    user_message = ChatMessage("user", cleaned)
    render_message(user_message)
    _append(user_message)

    st.session_state.loading = True
    try:
        with st.chat_message("assistant", avatar=AVATARS["assistant"]):
            placeholder = st.empty()
            placeholder.markdown(strings["thinking"])
            result = service.ask(
                history,
                cleaned,
                language=st.session_state.language,
                documents=st.session_state.documents,
                on_partial=lambda partial: placeholder.markdown(f"{partial}▌"),
            )
            placeholder.markdown(result.message.content)
        _append(result.message)
    finally:
        st.session_state.loading = False
    return result


def _render_sidebar(settings: AppSettings, store: KeyValueStore, tracker: QuotaTracker, strings) -> None:
    with st.sidebar:
        codes = list(LANGUAGE_NAMES)
        selected = st.selectbox(
            strings["language_selector"],
            codes,
            index=codes.index(st.session_state.language) if st.session_state.language in codes else 0,
            format_func=lambda code: LANGUAGE_NAMES[code],
        )
        if selected != st.session_state.language:
            st.session_state.language = selected
            _save_language(store)
            trigger_rerun()

        render_remaining_badge(strings["questions_remaining"], tracker.questions.remaining())
        render_remaining_badge(strings["plants_remaining"], tracker.plants.remaining())
        if tracker.questions.has_reached_limit():
            st.caption(strings["limit_reached_donate"])
        render_donate_button(strings["support_project"], settings.donate_url)

        removed = render_attachments(st.session_state.documents, strings)
        if removed is not None:
            st.session_state.documents.pop(removed)
            trigger_rerun()


def _render_tools(settings: AppSettings, service: ChatService, strings) -> None:
    doc_tab, image_tab, plant_tab, voice_tab = st.tabs(
        [strings["upload_document"], strings["upload_image"], strings["identify_plant"], strings["start_listening"]]
    )
    with doc_tab:
        uploaded = st.file_uploader(
            strings["upload_document"], type=DOCUMENT_EXTENSIONS, key="document_upload", label_visibility="collapsed"
        )
        if uploaded and _is_new_upload(uploaded):
            _handle_document(uploaded, strings)
    with image_tab:
        uploaded = st.file_uploader(
            strings["upload_image"], type=IMAGE_EXTENSIONS, key="image_upload", label_visibility="collapsed"
        )
        if uploaded and _is_new_upload(uploaded):
            _handle_image(uploaded, _shared_classifier(settings.image_classifier), strings)
    with plant_tab:
        uploaded = st.file_uploader(
            strings["identify_plant"], type=IMAGE_EXTENSIONS, key="plant_upload", label_visibility="collapsed"
        )
        if uploaded and _is_new_upload(uploaded):
            _handle_plant(service, uploaded, strings)
    with voice_tab:
        audio = st.audio_input(strings["start_listening"], key="voice_input")
        if audio:
            _handle_audio(settings, audio)
        if st.session_state.pending_prompt:
            st.caption(f"Transcript: {st.session_state.pending_prompt}")


def _render_app(settings: AppSettings) -> None:
    st.set_page_config(page_title="AVO AI", page_icon="🥑")

    store = _browser_store(settings)
    _init_session_state(store)
    strings = get_strings(st.session_state.language)
    tracker = QuotaTracker.create(
        store,
        question_limit=settings.question_limit,
        plant_limit=settings.plant_limit,
        clock=viewer_clock(),
    )
    service = _build_service(settings, tracker)

    _render_sidebar(settings, store, tracker, strings)

    st.title(strings["welcome"])
    st.caption(strings["subtitle"])

    terms = st.checkbox(strings["accept_terms"], key="terms_accepted")
    cookies = st.checkbox(strings["accept_cookies"], key="cookies_accepted")
    accepted = terms and cookies
    if not accepted:
        st.info(strings["please_accept"])
    else:
        _render_tools(settings, service, strings)

    render_history(st.session_state.messages)

    prompt = st.chat_input(strings["placeholder"], disabled=not accepted or st.session_state.loading)
    if accepted and not prompt and st.session_state.pending_prompt:
        prompt = st.session_state.pending_prompt
    if prompt:
        st.session_state.pending_prompt = None
        _handle_submit(service, prompt, strings)
        trigger_rerun()


def main() -> None:
    """Streamlit entry point for the chat client."""

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _render_app(settings)


if __name__ == "__main__":
    main()
