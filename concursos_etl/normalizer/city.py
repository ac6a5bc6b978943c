"""
Effective City Extraction

Listings rarely carry a clean municipality field: the city has to be guessed
from the organization ("Prefeitura Municipal de Itaperuna"), the title
("Concurso Câmara - ITU", "Processo seletivo em Campinas com 30 vagas") or the
location ("Itaperuna - RJ").

Candidates are tried in this order, stopping at the first one that survives
cleaning and validation:
    title: prefix rule, suffix rule, " em <City>" rule
    organization: prefix rule, suffix rule
    organization: loose "Prefeitura/Câmara <City>" rule
    location: first segment, unless it is just a state code
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..common.states import is_state_code
from ..common.text import title_case
from .heuristics import DEFAULT_HEURISTICS, HeuristicSettings

PREFIX_PATTERN = re.compile(
    r"^(?:Prefeitura|Câmara|SAAE)\s+(?:Municipal\s+)?"
    r"(?:da Estância Turística de|de|da|do)\s+([^-/,(]+)",
    re.IGNORECASE,
)
SUFFIX_PATTERN = re.compile(r"-\s+([A-ZÀ-ÿ\s'-]+)$")
TITLE_INFIX_PATTERN = re.compile(
    r"\s+em\s+([A-ZÀ-ÿ\s'-]+?)(?:\s*[-/,(]|\s+com\s+|$)",
    re.IGNORECASE,
)
LOOSE_ORGANIZATION_PATTERN = re.compile(r"^(?:Prefeitura|Câmara)\s+(?:Municipal\s+)?(.+)", re.IGNORECASE)

STATE_SUFFIX = re.compile(r"\s*[-/,(]\s*[A-Z]{2}$")
TRAILING_PUNCTUATION = re.compile(r"[.,;]$")
CONTINUATION_CLAUSE = re.compile(
    r"\s+(?:abre|divulga|anuncia|promove|realiza|publica|retifica|comunica|informa)\s+.*$",
    re.IGNORECASE,
)
GENERIC_WORDS = re.compile(
    r"^(?:municipal|estadual|federal|nacional|do estado|gerais|vários cargos|diversos cargos"
    r"|de|da|do|para|o|a|e|municipal de)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class CityMatch:
    city: str
    rule: str  # Which heuristic produced the city


def clean_city_candidate(
    text: Optional[str],
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
) -> Optional[str]:
    """
    Clean a raw candidate and return it title-cased, or None if rejected.

    Strips a trailing state code ("Itu - SP", "Itu/SP"), trailing punctuation
    and continuation clauses ("Itu abre concurso..."), then rejects generic
    words, very short candidates and long phrases.
    """
    if not text:
        return None

    cleaned = STATE_SUFFIX.sub("", text.strip()).strip()
    cleaned = TRAILING_PUNCTUATION.sub("", cleaned).strip()
    cleaned = CONTINUATION_CLAUSE.sub("", cleaned).strip()

    if GENERIC_WORDS.match(cleaned):
        return None
    if len(cleaned) < heuristics.city_min_length or len(cleaned.split(" ")) > heuristics.city_max_words:
        return None

    return title_case(cleaned)


def find_effective_city(
    organization: Optional[str],
    title: Optional[str],
    location: Optional[str],
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
) -> Optional[CityMatch]:
    """Return the effective city and the rule that found it, or None."""
    organization = organization or ""
    title = title or ""
    location = location or ""

    candidates: list[tuple[str, Optional[re.Match]]] = []
    for text, is_title in ((title, True), (organization, False)):
        if not text:
            continue
        candidates.append(("prefix", PREFIX_PATTERN.match(text)))
        candidates.append(("suffix", SUFFIX_PATTERN.search(text)))
        if is_title:
            candidates.append(("title_infix", TITLE_INFIX_PATTERN.search(text)))

    candidates.append(("organization_prefix", LOOSE_ORGANIZATION_PATTERN.match(organization)))

    for rule, match in candidates:
        if match:
            city = clean_city_candidate(match.group(1), heuristics)
            if city:
                return CityMatch(city=city, rule=rule)

    location = location.strip()
    if len(location) > 2 and not is_state_code(location):
        segment = re.split(r"[/-]", location)[0].strip()
        if not is_state_code(segment):
            city = clean_city_candidate(segment, heuristics)
            if city:
                return CityMatch(city=city, rule="location")

    return None


def extract_effective_city(
    organization: Optional[str],
    title: Optional[str],
    location: Optional[str],
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
) -> Optional[str]:
    """
    Return the municipality a listing pertains to, or None.

    Examples:
        >>> extract_effective_city("Prefeitura Municipal de Itaperuna", "", "RJ")
        'Itaperuna'
    """
    match = find_effective_city(organization, title, location, heuristics)
    return match.city if match else None
