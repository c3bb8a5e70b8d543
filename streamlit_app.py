"""Streamlit Cloud entry point.

Hosted deployments launch ``streamlit_app.py`` as the main module; the chat
client itself lives in :mod:`chat_app`, so we simply forward ``main`` here.
"""

from chat_app import main as chat_main


def main() -> None:
    """Invoke the chat client."""

    chat_main()


if __name__ == "__main__":  # pragma: no cover
    main()
