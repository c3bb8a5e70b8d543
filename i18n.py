"""User-facing strings for the supported interface languages."""

from __future__ import annotations

from typing import Mapping

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Español",
    "it": "Italiano",
    "fr": "Français",
    "de": "Deutsch",
    "pl": "Polski",
    "palmero": "Palmero",
}

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "placeholder": "Ask me anything about the Canary Islands…",
        "welcome": "Welcome to AVO AI",
        "subtitle": "Your friendly guide to the Canary Islands",
        "accept_terms": "I accept the privacy policy and terms of service",
        "accept_cookies": "I accept the cookie policy",
        "please_accept": "Please accept the policies to start chatting.",
        "upload_document": "Upload document",
        "upload_image": "Upload image",
        "identify_plant": "Identify plant",
        "analyzing_plant": "Identifying your plant…",
        "plant_limit_reached": "You have reached today's limit of plant identifications. Come back tomorrow!",
        "analyzing": "Analyzing image…",
        "max_files_reached": "You have reached the maximum number of attached files.",
        "daily_limit_reached": "You have reached today's question limit. Come back tomorrow!",
        "questions_remaining": "{count} questions remaining today",
        "plants_remaining": "{count} plant identifications remaining today",
        "support_project": "Support the project",
        "limit_reached_donate": "Enjoying AVO AI? Help keep it running.",
        "start_listening": "Dictate",
        "language_selector": "Language",
        "uploaded_files": "Uploaded files",
        "remove_file": "Remove",
        "thinking": "Thinking…",
    },
    "es": {
        "placeholder": "Pregúntame lo que quieras sobre las Islas Canarias…",
        "welcome": "Bienvenido a AVO AI",
        "subtitle": "Tu guía amigable de las Islas Canarias",
        "accept_terms": "Acepto la política de privacidad y los términos de servicio",
        "accept_cookies": "Acepto la política de cookies",
        "please_accept": "Acepta las políticas para empezar a chatear.",
        "upload_document": "Subir documento",
        "upload_image": "Subir imagen",
        "identify_plant": "Identificar planta",
        "analyzing_plant": "Identificando tu planta…",
        "plant_limit_reached": "Has alcanzado el límite diario de identificaciones de plantas. ¡Vuelve mañana!",
        "analyzing": "Analizando imagen…",
        "max_files_reached": "Has alcanzado el número máximo de archivos adjuntos.",
        "daily_limit_reached": "Has alcanzado el límite diario de preguntas. ¡Vuelve mañana!",
        "questions_remaining": "Te quedan {count} preguntas hoy",
        "plants_remaining": "Te quedan {count} identificaciones de plantas hoy",
        "support_project": "Apoya el proyecto",
        "limit_reached_donate": "¿Te gusta AVO AI? Ayuda a mantenerlo.",
        "start_listening": "Dictar",
        "language_selector": "Idioma",
        "thinking": "Pensando…",
    },
    "it": {
        "placeholder": "Chiedimi qualsiasi cosa sulle Isole Canarie…",
        "welcome": "Benvenuto in AVO AI",
        "accept_terms": "Accetto l'informativa sulla privacy e i termini di servizio",
        "accept_cookies": "Accetto la cookie policy",
        "please_accept": "Accetta le informative per iniziare a chattare.",
        "identify_plant": "Identifica pianta",
        "daily_limit_reached": "Hai raggiunto il limite giornaliero di domande. Torna domani!",
        "questions_remaining": "{count} domande rimanenti oggi",
        "plant_limit_reached": "Hai raggiunto il limite giornaliero di identificazioni. Torna domani!",
        "support_project": "Sostieni il progetto",
        "language_selector": "Lingua",
    },
    "fr": {
        "placeholder": "Demandez-moi tout sur les îles Canaries…",
        "welcome": "Bienvenue sur AVO AI",
        "accept_terms": "J'accepte la politique de confidentialité et les conditions d'utilisation",
        "accept_cookies": "J'accepte la politique relative aux cookies",
        "please_accept": "Veuillez accepter les politiques pour commencer.",
        "identify_plant": "Identifier une plante",
        "daily_limit_reached": "Vous avez atteint la limite quotidienne de questions. Revenez demain !",
        "questions_remaining": "{count} questions restantes aujourd'hui",
        "plant_limit_reached": "Vous avez atteint la limite quotidienne d'identifications. Revenez demain !",
        "support_project": "Soutenir le projet",
        "language_selector": "Langue",
    },
    "de": {
        "placeholder": "Frag mich alles über die Kanarischen Inseln…",
        "welcome": "Willkommen bei AVO AI",
        "accept_terms": "Ich akzeptiere die Datenschutzerklärung und die Nutzungsbedingungen",
        "accept_cookies": "Ich akzeptiere die Cookie-Richtlinie",
        "please_accept": "Bitte akzeptiere die Richtlinien, um zu chatten.",
        "identify_plant": "Pflanze bestimmen",
        "daily_limit_reached": "Du hast das tägliche Fragenlimit erreicht. Komm morgen wieder!",
        "questions_remaining": "Noch {count} Fragen heute",
        "plant_limit_reached": "Du hast das tägliche Limit für Pflanzenbestimmungen erreicht. Komm morgen wieder!",
        "support_project": "Projekt unterstützen",
        "language_selector": "Sprache",
    },
    "pl": {
        "placeholder": "Zapytaj mnie o cokolwiek na temat Wysp Kanaryjskich…",
        "welcome": "Witaj w AVO AI",
        "accept_terms": "Akceptuję politykę prywatności i warunki korzystania",
        "accept_cookies": "Akceptuję politykę cookies",
        "please_accept": "Zaakceptuj zasady, aby rozpocząć rozmowę.",
        "identify_plant": "Rozpoznaj roślinę",
        "daily_limit_reached": "Osiągnięto dzienny limit pytań. Wróć jutro!",
        "questions_remaining": "Pozostało {count} pytań na dziś",
        "plant_limit_reached": "Osiągnięto dzienny limit rozpoznawania roślin. Wróć jutro!",
        "support_project": "Wesprzyj projekt",
        "language_selector": "Język",
    },
    "palmero": {
        "placeholder": "¡Pregúntame lo que quieras, mi niño!",
        "welcome": "¡Bienvenido a AVO AI, muchacho!",
        "daily_limit_reached": "¡Ay, mi niño! Ya hiciste todas las preguntas de hoy. ¡Vuelve mañana!",
        "questions_remaining": "Te quedan {count} preguntas hoy, mi niño",
        "language_selector": "Idioma",
    },
}


def get_strings(language: str | None) -> Mapping[str, str]:
    """Return the strings for ``language`` with English filling any gaps."""

    base = TRANSLATIONS[DEFAULT_LANGUAGE]
    overrides = TRANSLATIONS.get((language or "").lower(), {})
    return {**base, **overrides}


def detect_language(accept_language: str | None) -> str:
    """Pick the first supported language from an ``Accept-Language`` header."""

    if not accept_language:
        return DEFAULT_LANGUAGE
    for part in accept_language.split(","):
        tag = part.split(";", 1)[0].strip().lower()
        primary = tag.split("-", 1)[0]
        if primary in TRANSLATIONS:
            return primary
    return DEFAULT_LANGUAGE


__all__ = ["DEFAULT_LANGUAGE", "LANGUAGE_NAMES", "TRANSLATIONS", "detect_language", "get_strings"]
