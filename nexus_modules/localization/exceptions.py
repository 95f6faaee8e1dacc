"""Localization exceptions."""

from nexus_kernel.exceptions import NexusError


class LocalizationError(NexusError):
    """Base exception for the localization package."""

    code: str = "LOCALIZATION_ERROR"


class LocaleNotFoundError(LocalizationError):
    code: str = "LOCALE_NOT_FOUND"

    def __init__(self, locale_code: str):
        self.locale_code = locale_code
        super().__init__(f"Locale not found: {locale_code}", locale_code=locale_code)


class LocaleNotActiveError(LocalizationError):
    code: str = "LOCALE_NOT_ACTIVE"

    def __init__(self, locale_code: str, status: str):
        self.locale_code = locale_code
        self.status = status
        super().__init__(f"Locale {locale_code} is {status}", locale_code=locale_code, status=status)


class InvalidLocaleCodeError(LocalizationError, ValueError):
    code: str = "INVALID_LOCALE_CODE"

    def __init__(self, locale_code: str):
        self.locale_code = locale_code
        super().__init__(
            f"Locale code must look like 'xx' or 'xx_YY': {locale_code!r}",
            locale_code=locale_code,
        )


class NumberParseError(LocalizationError, ValueError):
    code: str = "NUMBER_PARSE_ERROR"

    def __init__(self, text: str, locale_code: str):
        self.text = text
        self.locale_code = locale_code
        super().__init__(f"Cannot parse {text!r} as a number for locale {locale_code}", locale_code=locale_code)
