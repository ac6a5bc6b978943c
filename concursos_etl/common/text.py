"""
Text Normalization Helpers

Pure functions used to build search keys and display strings:
- Diacritic stripping + case folding: "São Paulo" -> "sao paulo"
- Whitespace collapsing: "Prefeitura   de\\nItu" -> "Prefeitura de Itu"
- Portuguese title casing that keeps connector words lowercase
"""

import re
import unicodedata
from typing import Optional

# Connector words kept lowercase by title_case (except as the first word)
CONNECTOR_WORDS = {
    'a', 'e', 'o', 'de', 'da', 'do', 'das', 'dos', 'em',
    'um', 'uma', 'com', 'por', 'para',
}


def normalize_text(text: Optional[str]) -> str:
    """
    Strip diacritics and lowercase a string for use as a search key.

    Examples:
        >>> normalize_text("Câmara de São José")
        'camara de sao jose'
        >>> normalize_text(None)
        ''
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize('NFD', text)
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def normalize_whitespace(text: Optional[str]) -> str:
    """
    Collapse runs of whitespace into single spaces and trim the ends.

    Examples:
        >>> normalize_whitespace("  Data   Engineer  ")
        'Data Engineer'
    """
    if not text:
        return ""

    return re.sub(r'\s+', ' ', text.strip())


def title_case(text: Optional[str]) -> str:
    """
    Title-case a phrase, keeping connector words lowercase.

    Examples:
        >>> title_case("SÃO JOSÉ DOS CAMPOS")
        'São José dos Campos'
    """
    if not text:
        return ""

    words = text.lower().split(' ')
    cased = []
    for index, word in enumerate(words):
        if index > 0 and word in CONNECTOR_WORDS:
            cased.append(word)
        else:
            cased.append(word[:1].upper() + word[1:])
    return ' '.join(cased)


def capitalize_first(text: str) -> str:
    """Uppercase only the first character, leaving the rest untouched."""
    return text[:1].upper() + text[1:]
