"""Invoice number series: prefix formatting, parsing and client codes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

CLIENT_CODE_LENGTH = 4
UNKNOWN_CLIENT_CODE = "UNKN"

_LEGAL_SUFFIXES = re.compile(r"\b(Ltd|LLC|Inc|Corp|GmbH|AG|SA|BV|Pty|Co\.?)(?=\W|$)", re.IGNORECASE)
_NON_LETTERS = re.compile(r"[^a-zA-Z\s]")


@dataclass(frozen=True)
class NumberSeries:
    """A numbering series such as `2025-0001` or `2025-08-ACME-001`."""

    prefix: str
    width: int

    @property
    def like_pattern(self) -> str:
        return f"{self.prefix}-%"

    def format(self, sequence: int) -> str:
        if sequence < 1:
            raise ValueError("Invoice sequence must be >= 1.")
        return f"{self.prefix}-{sequence:0{self.width}d}"

    def parse(self, invoice_number: str) -> int | None:
        """Return the numeric suffix, or None when the number is not in this series."""
        match = re.fullmatch(rf"{re.escape(self.prefix)}-(\d+)", invoice_number or "")
        if match is None:
            return None
        return int(match.group(1))


def client_code(client_company: str | None) -> str:
    """Four-letter uppercase code derived from a client company name."""
    cleaned = _NON_LETTERS.sub("", _LEGAL_SUFFIXES.sub("", client_company or "")).strip()
    words = [word for word in cleaned.split() if word]
    if not words:
        return UNKNOWN_CLIENT_CODE

    if len(words) == 1:
        code = words[0][:CLIENT_CODE_LENGTH].upper()
    else:
        code = "".join(word[0] for word in words)[:CLIENT_CODE_LENGTH].upper()
        if len(code) < CLIENT_CODE_LENGTH:
            code += words[0][1 : 1 + CLIENT_CODE_LENGTH - len(code)].upper()
    return code.ljust(CLIENT_CODE_LENGTH, "X")


def period_prefix(reference_date: date, period: str) -> str:
    if period == "month":
        return f"{reference_date.year:04d}-{reference_date.month:02d}"
    return f"{reference_date.year:04d}"
