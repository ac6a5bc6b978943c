"""
Publication Date Normalization

Article lists print dates as "10/03/2025", "10/03/25" or
"10 de março de 2025" (possibly surrounded by author names). All of them are
stored as ISO yyyy-mm-dd.
"""

import re
from datetime import date
from typing import Optional

MONTHS = {
    "janeiro": 1, "fevereiro": 2, "março": 3, "marco": 3, "abril": 4,
    "maio": 5, "junho": 6, "julho": 7, "agosto": 8,
    "setembro": 9, "outubro": 10, "novembro": 11, "dezembro": 12,
}

NUMERIC_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2,4})")
WRITTEN_DATE = re.compile(r"(\d{1,2}) de (\w+) de (\d{4})")


def _safe_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_publication_date(text: Optional[str], today: Optional[date] = None) -> str:
    """
    Convert a publication date fragment to ISO format.

    Falls back to today's date when the text holds no recognizable date.

    Examples:
        >>> normalize_publication_date("Atualizada em 5/3/25")
        '2025-03-05'
        >>> normalize_publication_date("10 de março de 2025")
        '2025-03-10'
    """
    fallback = (today or date.today()).isoformat()
    if not text:
        return fallback

    lower = text.lower().strip()

    match = NUMERIC_DATE.search(lower)
    if match:
        year = int(match.group(3))
        if len(match.group(3)) == 2:
            year += 2000
        iso = _safe_iso(year, int(match.group(2)), int(match.group(1)))
        if iso:
            return iso

    match = WRITTEN_DATE.search(lower)
    if match and match.group(2) in MONTHS:
        iso = _safe_iso(int(match.group(3)), MONTHS[match.group(2)], int(match.group(1)))
        if iso:
            return iso

    return fallback
