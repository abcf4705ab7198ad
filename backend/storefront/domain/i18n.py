"""
Storefront languages
"""
from enum import Enum
from typing import Optional


class Language(str, Enum):
    EN = "en"
    AR = "ar"

    @property
    def is_rtl(self) -> bool:
        return self is Language.AR


def localized(en: Optional[str], ar: Optional[str], language: Language = Language.EN) -> Optional[str]:
    """Pick the text for the language, falling back to the other one when missing"""
    if language is Language.AR:
        return ar or en
    return en or ar
