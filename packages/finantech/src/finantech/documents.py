"""CPF and CNPJ check-digit validation and formatting."""

from __future__ import annotations

import re

import structlog

from finantech.errors import DocumentValidationError

logger = structlog.get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")

CPF_LENGTH = 11
CNPJ_LENGTH = 14


def only_digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def _all_same_digit(digits: str) -> bool:
    return len(set(digits)) == 1


def _cpf_check_digit(digits: str) -> int:
    # Weights run from len+1 down to 2.
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder >= 10 else remainder


def _cnpj_check_digit(digits: str) -> int:
    # Weights cycle 9..2 from the rightmost digit.
    total = 0
    weight = 2
    for d in reversed(digits):
        total += int(d) * weight
        weight = 2 if weight == 9 else weight + 1
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_cpf(value: str) -> bool:
    """Validate an 11-digit CPF, punctuation allowed."""
    digits = only_digits(value)
    if len(digits) != CPF_LENGTH or _all_same_digit(digits):
        return False
    if _cpf_check_digit(digits[:9]) != int(digits[9]):
        return False
    return _cpf_check_digit(digits[:10]) == int(digits[10])


def is_valid_cnpj(value: str) -> bool:
    """Validate a 14-digit CNPJ, punctuation allowed."""
    digits = only_digits(value)
    if len(digits) != CNPJ_LENGTH or _all_same_digit(digits):
        return False
    if _cnpj_check_digit(digits[:12]) != int(digits[12]):
        return False
    return _cnpj_check_digit(digits[:13]) == int(digits[13])


def is_valid_document(value: str) -> bool:
    """Validate a CPF (11 digits) or a CNPJ (14 digits).

    Any other digit count is invalid.
    """
    digits = only_digits(value)
    if len(digits) == CPF_LENGTH:
        return is_valid_cpf(digits)
    if len(digits) == CNPJ_LENGTH:
        return is_valid_cnpj(digits)
    return False


def format_document(value: str) -> str:
    """Mask a document as ``000.000.000-00`` or ``00.000.000/0000-00``.

    Partial input is masked as far as it goes, which lets forms format while
    the user types.
    """
    digits = only_digits(value)
    if len(digits) <= CPF_LENGTH:
        groups = [digits[0:3], digits[3:6], digits[6:9]]
        head = ".".join(g for g in groups if g)
        tail = digits[9:11]
        return f"{head}-{tail}" if tail else head

    digits = digits[:CNPJ_LENGTH]
    head = ".".join(g for g in (digits[0:2], digits[2:5], digits[5:8]) if g)
    branch = digits[8:12]
    tail = digits[12:14]
    result = f"{head}/{branch}"
    return f"{result}-{tail}" if tail else result


def require_valid_document(value: str, field: str = "document") -> str:
    """Return the masked document or raise DocumentValidationError."""
    if not is_valid_document(value):
        logger.info("document_rejected", field=field)
        raise DocumentValidationError(
            "CPF/CNPJ inválido. Por favor, verifique o número digitado.",
            details={"field": field, "value": value},
        )
    return format_document(value)
