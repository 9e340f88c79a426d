"""Enumerations for domain models."""

from enum import Enum


class TransactionType(str, Enum):
    """Types of ledger transactions."""

    BUY = "BUY"
    SELL = "SELL"


class SecurityType(str, Enum):
    """Broad classification of a security."""

    STOCK = "STOCK"
    ETF = "ETF"
    FUND = "FUND"
    BOND = "BOND"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"


class ProviderName(str, Enum):
    """Market data providers the quote cache can be configured with."""

    YAHOO = "yahoo"
    FMP = "fmp"
    STUB = "stub"
