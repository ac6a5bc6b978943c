"""
Listing Normalization Logic

This module transforms raw listings produced by the source adapters into the
row format of the target tables. It composes the pure field extractors of this
package; nothing here performs I/O.

Key Responsibilities:
- Ensure required fields (title, absolute link) are present
- Derive search keys, numeric salary/vacancy values, deadline and city fields
- Tag open postings with the current run identifier
"""

import logging
import re
from datetime import date
from typing import Any, Optional
from urllib.parse import urlparse

from ..common.states import detect_mentioned_states
from ..common.text import normalize_text, normalize_whitespace
from ..source_extractor.base import ArticleListing, RawListing
from .city import extract_effective_city
from .dates import normalize_publication_date
from .deadline import parse_deadline
from .education import split_roles_and_education
from .heuristics import DEFAULT_HEURISTICS, HeuristicSettings
from .salary import (
    NOT_INFORMED,
    parse_salary_range,
    parse_vacancy_count,
    split_salary_and_vacancies,
)

logger = logging.getLogger(__name__)

# Valid posting types (must match the database CHECK constraint)
TYPE_CONCURSO = "concurso"
TYPE_PROCESSO_SELETIVO = "processo_seletivo"

PROCESSO_SELETIVO_PATTERN = re.compile(r"\bprocesso seletivo\b")


class NormalizationError(Exception):
    """Raised when a listing cannot be normalized due to invalid or missing data."""
    pass


def _require_title_and_link(title: Optional[str], link: Optional[str]) -> tuple[str, str]:
    title = normalize_whitespace(title)
    if not title:
        raise NormalizationError("title is required and must be a non-empty string")

    link = (link or "").strip()
    parsed = urlparse(link)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise NormalizationError(f"link must be an absolute http(s) URL, got '{link}'")

    return title, link


def normalize_posting(
    listing: RawListing,
    run_id: str,
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """
    Normalize an open posting into a `job_openings` row.

    Args:
        listing: Raw listing scraped by an adapter
        run_id: Identifier of the current run, stored in `last_run_id`
        heuristics: Tunable extraction thresholds
        today: Reference date for deadlines without a year (default: today)

    Returns:
        Dictionary keyed by `job_openings` column name. `logo_path` is left
        as None; the image resolver fills it in.

    Raises:
        NormalizationError: If the title or link is missing or invalid

    Examples:
        >>> listing = RawListing(
        ...     title="Prefeitura de Itaperuna - RJ abre concurso",
        ...     organization="Prefeitura Municipal de Itaperuna",
        ...     raw_location_text="RJ",
        ...     raw_details_text="2 vagas / R$ 3.500,00 CR",
        ...     link="https://www.pciconcursos.com.br/noticias/itaperuna",
        ...     source="PCI Concursos",
        ... )
        >>> row = normalize_posting(listing, run_id="run-1")
        >>> row['max_salary_numeric'], row['effective_city']
        (3500.0, 'Itaperuna')
    """
    title, link = _require_title_and_link(listing.title, listing.link)
    organization = normalize_whitespace(listing.organization)
    location = normalize_whitespace(listing.raw_location_text)
    education_text = normalize_whitespace(listing.raw_education_text)
    salary_text = normalize_whitespace(listing.raw_details_text) or NOT_INFORMED

    effective_city = extract_effective_city(organization, title, location, heuristics)
    deadline = parse_deadline(listing.raw_deadline_text, today)

    salary_split = split_salary_and_vacancies(salary_text)
    vacancies = salary_split.vacancies or split_salary_and_vacancies(title).vacancies
    min_salary, max_salary = parse_salary_range(salary_text, heuristics)
    roles_and_levels = split_roles_and_education(education_text)

    searchable_text = normalize_text(f"{organization} {title} {location} {education_text}")
    posting_type = (
        TYPE_PROCESSO_SELETIVO
        if PROCESSO_SELETIVO_PATTERN.search(searchable_text)
        else TYPE_CONCURSO
    )

    row = {
        'title': title,
        'organization': organization,
        'location': location,
        'source': listing.source,
        'salary_text': salary_text,
        'education_level_text': education_text,
        'link': link,
        'city': effective_city,
        'effective_city': effective_city,
        'normalized_effective_city': normalize_text(effective_city) or None,
        'logo_url': listing.logo_url,
        'logo_path': None,
        'deadline_text': listing.raw_deadline_text,
        'deadline_date': deadline.date,
        'deadline_formatted': deadline.formatted,
        'type': posting_type,
        'searchable_text': searchable_text,
        'max_salary_numeric': max_salary,
        'min_salary_numeric': min_salary,
        'vacancies_numeric': parse_vacancy_count(vacancies),
        'education_levels': roles_and_levels.levels,
        'parsed_salary_text': salary_split.salary if salary_split.salary_informed else None,
        'parsed_vacancies_text': vacancies,
        'parsed_roles': roles_and_levels.roles,
        'mentioned_states': detect_mentioned_states(organization, title, location),
        'last_run_id': run_id,
    }

    logger.debug(
        "Normalized posting",
        extra={'link': link, 'effective_city': effective_city, 'type': posting_type},
    )
    return row


def normalize_article(listing: ArticleListing, today: Optional[date] = None) -> dict[str, Any]:
    """
    Normalize a news or predicted-posting entry into a `news_articles` /
    `predicted_openings` row.

    Raises:
        NormalizationError: If the title or link is missing or invalid
    """
    title, link = _require_title_and_link(listing.title, listing.link)

    return {
        'title': title,
        'link': link,
        'publication_date': normalize_publication_date(listing.raw_date_text, today),
        'source': listing.source,
        'normalized_title': normalize_text(title),
        'mentioned_states': detect_mentioned_states(title),
    }
