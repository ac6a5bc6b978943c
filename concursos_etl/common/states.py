"""
Brazilian State Table and Mention Detection

The fixed 27-entry table of (code, name) pairs grouped by region, plus a
detector that returns which state codes a listing mentions.

Matching rules:
- Codes match case-sensitively as standalone tokens: "SP/RJ" mentions SP and RJ,
  while the Portuguese word "se" does not mention Sergipe.
- Names match case-insensitively on word boundaries, longest name first, so
  "Mato Grosso do Sul" is not also reported as "Mato Grosso".
"""

import re

STATES_BY_REGION: dict[str, list[tuple[str, str]]] = {
    'Sudeste': [
        ('ES', 'Espírito Santo'), ('MG', 'Minas Gerais'),
        ('RJ', 'Rio de Janeiro'), ('SP', 'São Paulo'),
    ],
    'Sul': [
        ('PR', 'Paraná'), ('RS', 'Rio Grande do Sul'), ('SC', 'Santa Catarina'),
    ],
    'Centro-Oeste': [
        ('DF', 'Distrito Federal'), ('GO', 'Goiás'),
        ('MT', 'Mato Grosso'), ('MS', 'Mato Grosso do Sul'),
    ],
    'Nordeste': [
        ('AL', 'Alagoas'), ('BA', 'Bahia'), ('CE', 'Ceará'),
        ('MA', 'Maranhão'), ('PB', 'Paraíba'), ('PE', 'Pernambuco'),
        ('PI', 'Piauí'), ('RN', 'Rio Grande do Norte'), ('SE', 'Sergipe'),
    ],
    'Norte': [
        ('AC', 'Acre'), ('AP', 'Amapá'), ('AM', 'Amazonas'),
        ('PA', 'Pará'), ('RO', 'Rondônia'), ('RR', 'Roraima'), ('TO', 'Tocantins'),
    ],
}

ALL_STATES: list[tuple[str, str]] = [
    state for states in STATES_BY_REGION.values() for state in states
]
STATE_CODES = frozenset(code for code, _ in ALL_STATES)

# Letters, including accented ones, that must not touch a matched code
_LETTER = r'A-Za-zÀ-ÿ'

_CODE_PATTERNS = {
    code: re.compile(rf'(?<![{_LETTER}]){code}(?![{_LETTER}])', re.IGNORECASE)
    for code, _ in ALL_STATES
}
_NAME_PATTERNS = [
    (code, re.compile(rf'(?<![{_LETTER}]){re.escape(name)}(?![{_LETTER}])', re.IGNORECASE))
    for code, name in sorted(ALL_STATES, key=lambda state: len(state[1]), reverse=True)
]


def detect_mentioned_states(*texts: str) -> list[str]:
    """
    Return the sorted, de-duplicated state codes mentioned in the given texts.

    Args:
        *texts: Fragments to scan (organization, title, location...). None
            and empty values are ignored.

    Returns:
        Sorted list of two-letter state codes.

    Examples:
        >>> detect_mentioned_states("Concurso SP/RJ")
        ['RJ', 'SP']
        >>> detect_mentioned_states("Prefeitura de Campo Grande", "Mato Grosso do Sul")
        ['MS']
    """
    combined = ' '.join(text for text in texts if text)
    if not combined:
        return []

    found: set[str] = set()
    remaining = combined
    for code, pattern in _NAME_PATTERNS:
        if pattern.search(remaining):
            found.add(code)
            remaining = pattern.sub(' ', remaining)

    for code, pattern in _CODE_PATTERNS.items():
        if pattern.search(combined):
            found.add(code)

    return sorted(found)


def is_state_code(text: str) -> bool:
    """Return True if text is exactly a two-letter state code (any case)."""
    return text.strip().upper() in STATE_CODES
