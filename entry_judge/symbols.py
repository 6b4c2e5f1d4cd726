"""Free-form ticker input -> provider-specific symbol syntax.

Every function here is total: input that cannot be parsed degrades to an
upper-cased token and the provider reports "symbol not found" downstream.
"""

from __future__ import annotations

import re

# Exchange markers users paste after a code ("7203.T", "aapl.us")
_VENUE_SUFFIX = re.compile(r"\.(T|JP|TYO|JPX|US)$", re.IGNORECASE)

# TSE codes: 3 digits + digit or letter ("7203", "130A")
_JP_CODE = re.compile(r"(?<![0-9A-Za-z])(\d{3}[0-9A-Za-z])(?![0-9A-Za-z])")


def clean_code(raw: str | None, market: str = "us") -> str:
    """Strip whitespace, venue suffixes and trailing company names.

    >>> clean_code("7203 Toyota", "jp")
    '7203'
    >>> clean_code(" aapl.us ")
    'AAPL'
    """
    text = (raw or "").strip()
    if not text:
        return ""

    if market == "jp":
        match = _JP_CODE.search(text)
        if match:
            return match.group(1).upper()

    token = _VENUE_SUFFIX.sub("", text.split()[0])
    if not token:
        return re.sub(r"\s+", "", text).upper()
    return token.upper()


def is_jp_code(code: str) -> bool:
    return bool(_JP_CODE.fullmatch(code or ""))


def to_yahoo(raw: str, market: str) -> str:
    code = clean_code(raw, market)
    if market == "jp" and is_jp_code(code):
        return f"{code}.T"
    # Yahoo writes share classes with a dash (BRK-B)
    return code.replace(".", "-")


def to_stooq(raw: str, market: str) -> str:
    code = clean_code(raw, market).lower()
    if not code:
        return code
    if market == "jp":
        return f"{code}.jp"
    return f"{code.replace('.', '-')}.us"


def to_alpha_vantage(raw: str, market: str) -> str:
    """Bare code; JP venue disambiguation is left to the resolver."""
    return clean_code(raw, market)


def to_twelve_data(raw: str, market: str) -> str:
    return clean_code(raw, market)


NORMALIZERS = {
    "yahoo": to_yahoo,
    "yfinance": to_yahoo,
    "stooq": to_stooq,
    "alpha_vantage": to_alpha_vantage,
    "twelve_data": to_twelve_data,
}


def normalize(raw: str, market: str, provider: str) -> str:
    """Dispatch to the provider's normalizer; unknown providers get the clean code."""
    func = NORMALIZERS.get(provider, clean_code)
    return func(raw, market)
