"""Bitcoin-specific utility functions."""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Base58 body shared by legacy mainnet and testnet addresses
_BASE58 = r'[a-km-zA-HJ-NP-Z1-9]'

# Bitcoin address patterns (syntactic only, no checksum verification)
LEGACY_PATTERN = re.compile(rf'^[13]{_BASE58}{{25,34}}$')
SEGWIT_PATTERN = re.compile(r'^bc1[a-z0-9]{39,59}$')
TESTNET_PATTERN = re.compile(rf'^[2mn]{_BASE58}{{25,34}}$')
TESTNET_SEGWIT_PATTERN = re.compile(r'^tb1[a-z0-9]{39,59}$')

ADDRESS_PATTERNS = (
    LEGACY_PATTERN,
    SEGWIT_PATTERN,
    TESTNET_PATTERN,
    TESTNET_SEGWIT_PATTERN,
)

# Satoshis per Bitcoin
SATOSHIS_PER_BTC = Decimal('100000000')


def satoshi_to_btc(satoshis: int) -> Decimal:
    """Convert satoshis to BTC."""
    return Decimal(satoshis) / SATOSHIS_PER_BTC


def btc_to_satoshi(btc: Union[Decimal, float, int, str]) -> int:
    """Convert BTC to satoshis, rounding half away from zero."""
    if not isinstance(btc, Decimal):
        btc = Decimal(str(btc))
    return int((btc * SATOSHIS_PER_BTC).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def is_valid_address(address: str) -> bool:
    """
    Check whether a string looks like a Bitcoin address.

    Recognizes legacy (1/3), native segwit (bc1), legacy testnet (2/m/n)
    and native segwit testnet (tb1) formats by character class and length.
    Checksums are not verified, so a malformed string that fits one of the
    patterns is accepted.
    """
    if not address or not isinstance(address, str):
        return False

    return any(pattern.fullmatch(address) for pattern in ADDRESS_PATTERNS)
