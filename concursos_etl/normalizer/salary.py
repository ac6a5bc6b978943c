"""
Salary and Vacancy Extraction

PCI packs vacancies and pay into one free-text fragment, e.g.
"2 vagas / R$ 3.500,00 CR" or "Até R$ 12.000,00" or "45 vagas • A combinar".
This module splits that fragment into a vacancy descriptor and a salary display
string, and derives numeric values for filtering and sorting.

All functions are pure and never raise on odd input.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..common.text import capitalize_first, normalize_whitespace
from .heuristics import DEFAULT_HEURISTICS, HeuristicSettings

NOT_INFORMED = "Não informado"
TO_BE_AGREED = "A combinar"
RESERVE_LIST = "Cadastro Reserva"

# Either a cadastro-de-reserva marker or "<N> vagas" (N may use "." for thousands)
VACANCY_PATTERN = re.compile(r"\b(?:cr|cadastro de reserva)\b|([\d.]+)\s+vagas?", re.IGNORECASE)
VACANCY_COUNT_PATTERN = re.compile(r"([\d.]+)\s+vagas?", re.IGNORECASE)
EDGE_SEPARATORS = re.compile(r"^[/\s•,-]+|[/\s•,-]+$")
NUMBER_TOKEN = re.compile(r"[\d.,]+")
CEILING_PATTERN = re.compile(r"até\s+(.*)", re.IGNORECASE)

HOURLY_PATTERN = re.compile(r"\b(?:h|hora|h/a|por hora)\b")
DAILY_PATTERN = re.compile(r"\b(?:d|dia|diária|diaria)\b")


@dataclass(frozen=True)
class SalaryVacancySplit:
    """Result of splitting a salary/vacancy fragment."""

    vacancies: Optional[str]  # e.g. "2 vagas + Cadastro Reserva", None when absent
    salary: str  # Display string; NOT_INFORMED when absent

    @property
    def salary_informed(self) -> bool:
        return self.salary != NOT_INFORMED


def parse_br_number(token: str) -> Optional[float]:
    """
    Parse a pt-BR formatted number ("3.500,00" -> 3500.0).

    Leading and trailing separators are ignored. Returns None when the token
    holds no digits.
    """
    core = token.strip(".,")
    if not core:
        return None
    try:
        return float(core.replace(".", "").replace(",", "."))
    except ValueError:
        return None


def format_brl(value: float) -> str:
    """Format a number with two decimals and pt-BR grouping (3500 -> "3.500,00")."""
    return f"{value:,.2f}".translate(str.maketrans({",": ".", ".": ","}))


def format_salary_string(text: Optional[str]) -> Optional[str]:
    """
    Re-format currency values inside a salary string in pt-BR style.

    Only strings that contain "R$" and a digit are touched; values below 100
    are left as written (they are usually hours or counts, not money).

    Examples:
        >>> format_salary_string("R$ 3500")
        'R$ 3.500,00'
        >>> format_salary_string("Até R$ 1.412,5 + benefícios")
        'Até R$ 1.412,50 + benefícios'
    """
    if not text or not re.search(r"\d", text) or "r$" not in text.lower():
        return text

    def _reformat(match: re.Match) -> str:
        token = match.group(0)
        value = parse_br_number(token)
        if value is None or value < 100:
            return token
        # Keep punctuation that belongs to the sentence, not the number
        leading = token[: len(token) - len(token.lstrip(".,"))]
        trailing = token[len(token.rstrip(".,")):]
        return f"{leading}{format_brl(value)}{trailing}"

    return NUMBER_TOKEN.sub(_reformat, text)


def split_salary_and_vacancies(text: Optional[str]) -> SalaryVacancySplit:
    """
    Split a free-text fragment into vacancies and salary.

    Vacancy markers ("<N> vagas", "CR", "cadastro de reserva") are collected
    and removed; whatever remains is the salary text, normalized as:
    - empty or a bare "vagas" -> "Não informado"
    - contains "a combinar" -> "A combinar"
    - "até <X>" -> "Até <X>" (a ceiling)
    - a bare number without currency -> "Até R$ <number>"
    Currency values are then re-formatted by format_salary_string.

    Examples:
        >>> split_salary_and_vacancies("2 vagas / R$ 3.500,00 CR")
        SalaryVacancySplit(vacancies='2 vagas + Cadastro Reserva', salary='R$ 3.500,00')
    """
    if not text or NOT_INFORMED.lower() in text.lower():
        return SalaryVacancySplit(vacancies=None, salary=NOT_INFORMED)

    found: list[str] = []
    for match in VACANCY_PATTERN.finditer(text):
        if match.group(1) is None:
            if RESERVE_LIST not in found:
                found.append(RESERVE_LIST)
        else:
            found.append(normalize_whitespace(match.group(0)))

    residual = normalize_whitespace(EDGE_SEPARATORS.sub("", VACANCY_PATTERN.sub("", text)))

    if not residual or re.fullmatch(r"vagas?", residual, re.IGNORECASE):
        salary = NOT_INFORMED
    elif re.search(r"\ba combinar\b", residual, re.IGNORECASE):
        salary = TO_BE_AGREED
    else:
        ceiling = CEILING_PATTERN.search(residual)
        if ceiling and ceiling.group(1).strip():
            salary = f"Até {ceiling.group(1).strip()}"
        elif "R$" not in residual.upper() and re.search(r"\d", residual):
            salary = f"Até R$ {residual}"
        else:
            salary = residual
        salary = format_salary_string(salary)

    vacancies = capitalize_first(" + ".join(found)) if found else None
    return SalaryVacancySplit(vacancies=vacancies, salary=salary)


def salary_values(
    text: Optional[str],
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
) -> list[float]:
    """
    Extract monthly salary figures from a salary fragment.

    Vacancy counts are removed first. When several values remain and the
    largest is above `salary_stray_trigger`, values below
    `salary_stray_value_ceiling` are dropped as leftovers. Hourly and daily
    rates are scaled to an approximate monthly figure.
    """
    if not text:
        return []

    lower = text.lower()
    if NOT_INFORMED.lower() in lower or TO_BE_AGREED.lower() in lower:
        return []

    salary_only = re.sub(r"(\d+)\s+vagas?", "", text, flags=re.IGNORECASE)
    values = [
        value
        for value in (parse_br_number(token) for token in NUMBER_TOKEN.findall(salary_only))
        if value is not None
    ]
    if len(values) > 1 and max(values) > heuristics.salary_stray_trigger:
        values = [value for value in values if value >= heuristics.salary_stray_value_ceiling]

    if HOURLY_PATTERN.search(lower):
        return [value * heuristics.hourly_multiplier for value in values]
    if DAILY_PATTERN.search(lower):
        return [value * heuristics.daily_multiplier for value in values]
    return values


def parse_salary_range(
    text: Optional[str],
    heuristics: HeuristicSettings = DEFAULT_HEURISTICS,
) -> tuple[float, float]:
    """Return (min, max) monthly salary; (0, 0) when no figure is present."""
    values = salary_values(text, heuristics)
    if not values:
        return 0.0, 0.0
    return min(values), max(values)


def parse_vacancy_count(text: Optional[str]) -> int:
    """
    Sum every "<N> vagas" occurrence ("1.200 vagas + 3 vagas" -> 1203).

    Returns 0 when nothing matches.
    """
    if not text:
        return 0

    total = 0
    for match in VACANCY_COUNT_PATTERN.finditer(text):
        digits = match.group(1).replace(".", "")
        if digits.isdigit():
            total += int(digits)
    return total
