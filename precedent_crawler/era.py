"""Conversions between Japanese era notation (和暦) and the Gregorian calendar.

Only the three eras used by the precedent database are known: 昭和, 平成, 令和.
"""
import re
import unicodedata
from datetime import date, datetime
from typing import Optional, Tuple

from precedent_crawler.errors import DateOutOfRange, InvalidEraYear, UnrecognizedEraToken
from precedent_crawler.items import ERA_GLYPHS, Era, EraDate

# first and last day of each era; Reiwa is open ended
ERA_SPANS = {
    Era.SHOWA: (date(1926, 12, 25), date(1989, 1, 7)),
    Era.HEISEI: (date(1989, 1, 8), date(2019, 4, 30)),
    Era.REIWA: (date(2019, 5, 1), None),
}

FIRST_YEAR_TOKEN = "元"

_ERA_NAMES = {}
for _era, _glyph in ERA_GLYPHS.items():
    _ERA_NAMES[_glyph] = _era
    _ERA_NAMES[_era.value.lower()] = _era

_TOKEN_RE = re.compile(r"^(?P<era>[^\d元]+?)\s*(?P<year>\d+|元)\s*(?:年)?$")
_DATE_RE = re.compile(
    r"(?P<token>(?:" + "|".join(_ERA_NAMES) + r")\s*(?:\d+|元)\s*年)"
    r"\s*(?P<month>\d+)\s*月\s*(?P<day>\d+)\s*日",
    re.IGNORECASE,
)
_GREGORIAN_RE = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})$")


def _normalize(text: str):
    # NFKC folds full-width digits and spaces (４ -> 4, '　' -> ' ')
    return unicodedata.normalize("NFKC", text or "").strip()


def to_gregorian_year(era: Era, era_year: int) -> int:
    if era_year <= 0:
        raise InvalidEraYear(f"{era.value} {era_year}: era year must be positive")
    first, last = ERA_SPANS[era]
    year = first.year + era_year - 1
    if last is not None and year > last.year:
        raise InvalidEraYear(f"{era.value} {era_year} is past the end of the era ({last.isoformat()})")
    return year


def era_of(d: date) -> Era:
    for era, (first, last) in ERA_SPANS.items():
        if first <= d and (last is None or d <= last):
            return era
    raise DateOutOfRange(f"{d.isoformat()} predates {Era.SHOWA.value}")


def from_gregorian_date(year: int, month: int, day: int) -> EraDate:
    try:
        d = date(year, month, day)
    except (TypeError, ValueError) as e:
        raise DateOutOfRange(f"{year}/{month}/{day}: {e}") from e
    era = era_of(d)
    first, _ = ERA_SPANS[era]
    return EraDate(era=era, era_year=year - first.year + 1, year=year, month=month, day=day)


def from_date(d: date) -> EraDate:
    return from_gregorian_date(d.year, d.month, d.day)


def parse_era_token(text: str) -> Tuple[Era, int]:
    """Parse '令和4年', '令和元年', 'Reiwa 4', ' heisei 元 ' into (era, era_year)."""
    norm = _normalize(text)
    m = _TOKEN_RE.match(norm)
    if not m:
        raise UnrecognizedEraToken(f"not an era year: {text!r}")
    era = _ERA_NAMES.get(m.group("era").strip().lower())
    if era is None:
        raise UnrecognizedEraToken(f"unknown era {m.group('era')!r} in {text!r}")
    raw_year = m.group("year")
    era_year = 1 if raw_year == FIRST_YEAR_TOKEN else int(raw_year)
    return era, era_year


def parse_era_date(text: str, whole: bool = False) -> EraDate:
    """Parse a full era date such as '令和4年3月10日' or '平成元年1月8日'.

    By default the first era date found in the text is used; with whole=True
    the text must be nothing but the date.
    """
    norm = _normalize(text)
    m = _DATE_RE.fullmatch(norm) if whole else _DATE_RE.search(norm)
    if not m:
        raise UnrecognizedEraToken(f"not an era date: {text!r}")
    era, era_year = parse_era_token(m.group("token"))
    year = to_gregorian_year(era, era_year)
    result = from_gregorian_date(year, int(m.group("month")), int(m.group("day")))
    if result.era is not era:
        raise InvalidEraYear(f"{text!r} falls outside {era.value} (it is {result.era.value})")
    return result


def find_gregorian_year(text: str) -> Optional[int]:
    """Return a four digit Western year written next to an era date, if any."""
    m = re.search(r"(?<!\d)(\d{4})(?:\s*年|[/\-.]\d{1,2}[/\-.]\d{1,2})", _normalize(text))
    return int(m.group(1)) if m else None


def parse_gregorian_date(text: str) -> date:
    """Parse 'yyyy/mm/dd' (or 'yyyy-mm-dd')."""
    norm = _normalize(text)
    m = _GREGORIAN_RE.match(norm)
    if not m:
        try:
            return datetime.strptime(norm, "%Y%m%d").date()
        except ValueError:
            raise DateOutOfRange(f"expected yyyy/mm/dd, got {text!r}") from None
    y, mo, d = (int(g) for g in m.groups())
    try:
        return date(y, mo, d)
    except ValueError as e:
        raise DateOutOfRange(f"{text!r}: {e}") from e
