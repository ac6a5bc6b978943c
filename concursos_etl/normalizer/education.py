"""
Role and Education-Level Extraction

The PCI details field lists roles and education levels together, separated by
slashes or commas: "Professor / Nível Médio / Superior / Motorista".
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..common.text import normalize_text

EDUCATION_LEVELS = ("Fundamental", "Médio", "Técnico", "Superior")
LEVEL_ORDER = [f"Nível {level}" for level in EDUCATION_LEVELS]

# Tokens that carry no role information
PLACEHOLDERS = ("varios cargos", "nao informada")


@dataclass
class RolesAndLevels:
    roles: list[str] = field(default_factory=list)
    levels: list[str] = field(default_factory=list)


def split_roles_and_education(text: Optional[str]) -> RolesAndLevels:
    """
    Split a slash/comma-delimited field into roles and education levels.

    A token mentioning Fundamental, Médio, Técnico or Superior (accent and case
    insensitive) becomes "Nível X"; levels are de-duplicated and ordered from
    Fundamental to Superior. Every other token is a role, kept in its original
    order (duplicates included), except the "vários cargos" placeholder.

    Examples:
        >>> split_roles_and_education("Professor / Médio / Superior / Professor")
        RolesAndLevels(roles=['Professor', 'Professor'], levels=['Nível Médio', 'Nível Superior'])
    """
    result = RolesAndLevels()
    if not text:
        return result

    for part in (token.strip() for token in re.split(r"[/,]", text)):
        if not part:
            continue

        folded = normalize_text(part)
        matched = [level for level in EDUCATION_LEVELS if normalize_text(level) in folded]
        if matched:
            for level in matched:
                label = f"Nível {level}"
                if label not in result.levels:
                    result.levels.append(label)
        elif not any(placeholder in folded for placeholder in PLACEHOLDERS):
            result.roles.append(part)

    result.levels.sort(key=LEVEL_ORDER.index)
    return result
