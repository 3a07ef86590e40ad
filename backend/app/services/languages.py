from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    native: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


LANGUAGES: List[Language] = [
    Language("en", "English", "English"),
    Language("es", "Spanish", "Español"),
    Language("fr", "French", "Français"),
    Language("de", "German", "Deutsch"),
    Language("it", "Italian", "Italiano"),
    Language("pt", "Portuguese", "Português"),
    Language("zh", "Chinese", "中文"),
    Language("ja", "Japanese", "日本語"),
    Language("ko", "Korean", "한국어"),
    Language("ar", "Arabic", "العربية"),
    Language("hi", "Hindi", "हिन्दी"),
    Language("ru", "Russian", "Русский"),
    Language("nl", "Dutch", "Nederlands"),
    Language("pl", "Polish", "Polski"),
    Language("tr", "Turkish", "Türkçe"),
    Language("vi", "Vietnamese", "Tiếng Việt"),
    Language("th", "Thai", "ไทย"),
    Language("id", "Indonesian", "Bahasa Indonesia"),
    Language("sv", "Swedish", "Svenska"),
    Language("da", "Danish", "Dansk"),
    Language("fi", "Finnish", "Suomi"),
    Language("no", "Norwegian", "Norsk"),
    Language("cs", "Czech", "Čeština"),
    Language("el", "Greek", "Ελληνικά"),
    Language("he", "Hebrew", "עברית"),
    Language("uk", "Ukrainian", "Українська"),
    Language("ro", "Romanian", "Română"),
    Language("hu", "Hungarian", "Magyar"),
    Language("sk", "Slovak", "Slovenčina"),
    Language("bg", "Bulgarian", "Български"),
]

_BY_CODE: Dict[str, Language] = {lang.code: lang for lang in LANGUAGES}

DEFAULT_SOURCE_LANGUAGE = "es"
DEFAULT_TARGET_LANGUAGE = "en"


def get_language(code: str) -> Optional[Language]:
    return _BY_CODE.get(code)


def is_supported(code: str) -> bool:
    return code in _BY_CODE


def language_name(code: str) -> str:
    """English display name for a code; unknown codes are returned as-is."""
    lang = _BY_CODE.get(code)
    return lang.name if lang else code
