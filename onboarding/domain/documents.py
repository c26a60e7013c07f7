"""
National document normalization and validation.

Rules are looked up by ``(COUNTRY, type)``; adding a country means adding
entries to ``_VALIDATORS`` and ``_DOCUMENT_TYPES``.
"""

from __future__ import annotations

import re
from collections.abc import Callable

_NON_ALPHANUMERIC = re.compile(r"[^0-9A-Za-z]")
_NI_FORMAT = re.compile(r"^[A-Z]{2}\d{6}[A-Z]$")

CPF_WEIGHTS_FIRST = tuple(range(10, 1, -1))
CPF_WEIGHTS_SECOND = tuple(range(11, 1, -1))
CNPJ_WEIGHTS_FIRST = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
CNPJ_WEIGHTS_SECOND = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

UK_NI_INVALID_PREFIXES = frozenset({"BG", "GB", "NK", "KN", "TN", "NT", "ZZ"})

OTHER_TYPE = "other"


def normalize(document: str) -> str:
    """Strip every character that is not an ASCII letter or digit."""
    return _NON_ALPHANUMERIC.sub("", document)


def _is_digits(value: str, length: int) -> bool:
    return len(value) == length and value.isdigit()


def _repeated(value: str) -> bool:
    return len(set(value)) == 1


def cpf_check_digit(digits: str, weights: tuple[int, ...]) -> int:
    remainder = sum(int(d) * w for d, w in zip(digits, weights, strict=True)) % 11
    digit = 11 - remainder
    return 0 if digit >= 10 else digit


def cnpj_check_digit(digits: str, weights: tuple[int, ...]) -> int:
    remainder = sum(int(d) * w for d, w in zip(digits, weights, strict=True)) % 11
    return 0 if remainder < 2 else 11 - remainder


def _validate_cpf(value: str) -> bool:
    if not _is_digits(value, 11) or _repeated(value):
        return False
    first = cpf_check_digit(value[:9], CPF_WEIGHTS_FIRST)
    second = cpf_check_digit(value[:10], CPF_WEIGHTS_SECOND)
    return value[9:] == f"{first}{second}"


def _validate_cnpj(value: str) -> bool:
    if not _is_digits(value, 14) or _repeated(value):
        return False
    first = cnpj_check_digit(value[:12], CNPJ_WEIGHTS_FIRST)
    second = cnpj_check_digit(value[:13], CNPJ_WEIGHTS_SECOND)
    return value[12:] == f"{first}{second}"


def _validate_ssn(value: str) -> bool:
    if not _is_digits(value, 9) or _repeated(value):
        return False
    # area, group and serial blocks may not be all zeros
    return value[:3] != "000" and value[3:5] != "00" and value[5:] != "0000"


def _validate_ein(value: str) -> bool:
    return _is_digits(value, 9) and not _repeated(value)


def _validate_ni(value: str) -> bool:
    value = value.upper()
    return bool(_NI_FORMAT.match(value)) and value[:2] not in UK_NI_INVALID_PREFIXES


def _validate_crn(value: str) -> bool:
    return _is_digits(value, 8)


def _non_empty(value: str) -> bool:
    return len(value) > 0


_VALIDATORS: dict[tuple[str, str], Callable[[str], bool]] = {
    ("BR", "cpf"): _validate_cpf,
    ("BR", "cnpj"): _validate_cnpj,
    ("US", "ssn"): _validate_ssn,
    ("US", "ein"): _validate_ein,
    ("UK", "ni"): _validate_ni,
    ("UK", "crn"): _validate_crn,
}

_DOCUMENT_TYPES: dict[str, tuple[str, ...]] = {
    "BR": ("cpf", "cnpj", OTHER_TYPE),
    "US": ("ssn", "ein", OTHER_TYPE),
    "UK": ("ni", "crn", OTHER_TYPE),
}


def validate(document: str | None, document_type: str | None, country_code: str | None) -> bool:
    """Validate a document against the rule registered for its country and type.

    Countries without registered rules, and the ``other`` type everywhere,
    accept any document that is non-empty after normalization. A known
    country paired with a type it does not register is invalid.
    """
    if not document or not document_type or not country_code:
        return False

    normalized = normalize(document)
    doc_type = document_type.lower()
    country = country_code.upper()

    validator = _VALIDATORS.get((country, doc_type))
    if validator is not None:
        return validator(normalized)
    if doc_type == OTHER_TYPE or country not in _DOCUMENT_TYPES:
        return _non_empty(normalized)
    return False


def document_types_for_country(country_code: str) -> list[str]:
    """Document types offered for a country, ``other`` always last."""
    return list(_DOCUMENT_TYPES.get(country_code.upper(), (OTHER_TYPE,)))
