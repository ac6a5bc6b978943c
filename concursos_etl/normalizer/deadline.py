"""
Application Deadline Parsing

Deadline fragments come in many shapes: "até 20/09/2025",
"de 10/08/2024 a 20/09/2024", "Prorrogado até 30/06/25",
"Verificar edital28/10/2025". This module turns them into a display string
and a sortable date.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from ..common.text import capitalize_first

DATE_TOKEN = re.compile(r"(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?")
# "edital28/10" -> "edital 28/10"
GLUED_DATE = re.compile(r"([a-zA-Zá-úÁ-Ú])(\d{1,2}/\d{1,2})")
TRAILING_CONNECTOR = re.compile(r"\s*\b(de|a|até)\s*$", re.IGNORECASE)

STATUS_KEYWORDS = ("prorrogado", "reaberto", "verificar", "conferir")
EXTENSION_KEYWORDS = ("prorrogado", "reaberto")


@dataclass(frozen=True)
class DeadlineInfo:
    formatted: Optional[str]
    # Latest parsed date at UTC midnight; None when the text holds no date
    date: Optional[datetime]

    @property
    def has_date(self) -> bool:
        return self.date is not None


def _format_date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def extract_dates(text: str, today: Optional[date] = None) -> list[datetime]:
    """
    Return every valid DD/MM[/YY[YY]] date in text, ascending, at UTC midnight.

    Two-digit years become 20YY; a missing year is the current year. Impossible
    dates (31/02) are skipped.
    """
    current_year = (today or date.today()).year
    dates = []
    for match in DATE_TOKEN.finditer(text):
        day, month = int(match.group(1)), int(match.group(2))
        year = int(match.group(3)) if match.group(3) else current_year
        if year < 100:
            year += 2000
        try:
            dates.append(datetime(year, month, day, tzinfo=timezone.utc))
        except ValueError:
            continue
    return sorted(dates)


def parse_deadline(text: Optional[str], today: Optional[date] = None) -> DeadlineInfo:
    """
    Parse a deadline fragment.

    - No dates: the text itself (first letter capitalized) with no date.
    - One distinct date: "Até DD/MM/YYYY".
    - Distinct first and last dates: "De DD/MM/YYYY a DD/MM/YYYY".
    - With "prorrogado"/"reaberto"/"verificar"/"conferir", leftover text is kept
      as an annotation: "Verificar edital (Até 28/10/2025)". When the keyword
      is "prorrogado"/"reaberto" and nothing else is left, the result is
      prefixed instead: "Prorrogado: Até 30/06/2025".

    The sortable date is always the latest parsed date.

    Examples:
        >>> parse_deadline("de 10/08/2024 a 20/09/2024").formatted
        'De 10/08/2024 a 20/09/2024'
    """
    if not text:
        return DeadlineInfo(formatted=None, date=None)

    spaced = GLUED_DATE.sub(r"\1 \2", text)
    lower = spaced.lower()

    dates = extract_dates(spaced, today)
    if not dates:
        return DeadlineInfo(formatted=capitalize_first(spaced), date=None)

    first, last = _format_date(dates[0]), _format_date(dates[-1])
    date_part = f"De {first} a {last}" if first != last else f"Até {last}"

    residual = DATE_TOKEN.sub("", spaced)
    residual = TRAILING_CONNECTOR.sub("", residual)
    residual = re.sub(r"^[-\s]+", "", residual).strip()

    formatted = date_part
    if any(keyword in lower for keyword in STATUS_KEYWORDS) and residual:
        other_text = residual.lower()
        for keyword in EXTENSION_KEYWORDS:
            other_text = other_text.replace(keyword, "")

        if not re.sub(r"[\W_]+", "", other_text) and any(kw in lower for kw in EXTENSION_KEYWORDS):
            formatted = f"Prorrogado: {date_part}"
        else:
            formatted = f"{capitalize_first(residual)} ({date_part})"

    return DeadlineInfo(formatted=formatted, date=dates[-1])
