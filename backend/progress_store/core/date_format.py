"""Date Format — medium-style localized dates for achievement books and lookups.

Invariants:
    - All locale data is pure (no IO, no process-wide locale switching)
    - Unknown locales fall back to English
    - Locale strings accept "fr", "fr_FR", "fr-FR" (language part is used)

Design Decisions:
    - In-repo locale tables; setlocale() is never called (reads format dates
      on arbitrary threads)
"""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class _LocalePattern:
    months: tuple[str, ...]
    date_pattern: str
    time_24h: bool = True
    joiner: str = " "


_LOCALES: dict[str, _LocalePattern] = {
    "en": _LocalePattern(
        months=("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        date_pattern="{month} {day}, {year}",
        time_24h=False,
        joiner=", ",
    ),
    "fr": _LocalePattern(
        months=("janv.", "févr.", "mars", "avr.", "mai", "juin",
                "juil.", "août", "sept.", "oct.", "nov.", "déc."),
        date_pattern="{day} {month} {year}",
    ),
    "de": _LocalePattern(
        months=("Jan.", "Feb.", "März", "Apr.", "Mai", "Juni",
                "Juli", "Aug.", "Sept.", "Okt.", "Nov.", "Dez."),
        date_pattern="{day2}.{month2}.{year}",
        joiner=", ",
    ),
    "es": _LocalePattern(
        months=("ene", "feb", "mar", "abr", "may", "jun",
                "jul", "ago", "sept", "oct", "nov", "dic"),
        date_pattern="{day} {month} {year}",
        joiner=", ",
    ),
    "it": _LocalePattern(
        months=("gen", "feb", "mar", "apr", "mag", "giu",
                "lug", "ago", "set", "ott", "nov", "dic"),
        date_pattern="{day} {month} {year}",
        joiner=", ",
    ),
    "pt": _LocalePattern(
        months=("jan.", "fev.", "mar.", "abr.", "mai.", "jun.",
                "jul.", "ago.", "set.", "out.", "nov.", "dez."),
        date_pattern="{day} de {month} de {year}",
    ),
    "nl": _LocalePattern(
        months=("jan.", "feb.", "mrt.", "apr.", "mei", "jun.",
                "jul.", "aug.", "sep.", "okt.", "nov.", "dec."),
        date_pattern="{day} {month} {year}",
    ),
}


def _language(locale: str) -> str:
    return locale.replace("-", "_").split("_", 1)[0].strip().lower()


def resolve_locale(locale: str) -> str:
    """Language code actually used for formatting."""
    lang = _language(locale or "")
    return lang if lang in _LOCALES else "en"


def _format_time(value: datetime, pattern: _LocalePattern) -> str:
    if pattern.time_24h:
        return f"{value.hour:02d}:{value.minute:02d}"
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_date(value: date | datetime, locale: str = "en", with_time: bool = False) -> str:
    """Format a stored date the way the achievement book displays it."""
    pattern = _LOCALES[resolve_locale(locale)]
    text = pattern.date_pattern.format(
        day=value.day,
        day2=f"{value.day:02d}",
        month=pattern.months[value.month - 1],
        month2=f"{value.month:02d}",
        year=value.year,
    )
    if with_time and isinstance(value, datetime):
        text = f"{text}{pattern.joiner}{_format_time(value, pattern)}"
    return text


class DateFormatter:
    """Binds locale + time flag from settings; callable on stored dates."""

    def __init__(self, locale: str = "en", with_time: bool = False):
        self.locale = resolve_locale(locale)
        self.with_time = with_time

    def __call__(self, value: date | datetime | str | None) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            # SQLite rows that predate the DateTime migration come back as text
            value = datetime.fromisoformat(value)
        return format_date(value, self.locale, self.with_time)
