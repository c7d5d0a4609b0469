# PATH: core/validators.py
"""
Address validators for query filters.

CONTRACTS:
- EVM addresses are normalized to lowercase 0x-prefixed hex.
- Solana addresses are base58 and passed through unchanged.
- Invalid input raises InvalidAddressError with actionable suggestions.

USAGE:
    from core.validators import normalize_addresses

    addresses = normalize_addresses(["0xA0b8..."], ChainType.EVM)
"""

import re
from typing import Iterable, List, Optional

from core.constants import ChainType
from core.exceptions import InvalidAddressError

EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


def is_valid_evm_address(address: str) -> bool:
    return bool(EVM_ADDRESS_RE.match(address))


def is_valid_solana_address(address: str) -> bool:
    return bool(SOLANA_ADDRESS_RE.match(address))


def normalize_evm_address(address: str) -> str:
    """Add the 0x prefix if missing and lowercase."""
    if not address.startswith("0x"):
        address = "0x" + address
    return address.lower()


def address_format_error(address: str) -> InvalidAddressError:
    """Build an InvalidAddressError listing everything wrong with `address`."""
    suggestions = []

    if not address.startswith("0x"):
        suggestions.append("Address must start with '0x'")

    if len(address) != 42:
        suggestions.append(
            f"Address must be 42 characters (0x + 40 hex digits), got {len(address)}"
        )

    if not HEX_RE.match(address):
        suggestions.append("Address must contain only hexadecimal characters (0-9, a-f)")

    if address != address.lower():
        suggestions.append("Use lowercase addresses for consistency")
        suggestions.append(f"Try: {address.lower()}")

    return InvalidAddressError(
        f"Invalid address format: {address}",
        suggestions,
        {"address": address},
    )


def normalize_addresses(
    addresses: Optional[Iterable[str]],
    chain_type: ChainType,
) -> Optional[List[str]]:
    """
    Validate and normalize filter addresses for a chain.

    Returns None for a missing or empty list so callers can treat it as
    "no filter".
    """
    if not addresses:
        return None

    normalized = []
    for address in addresses:
        if chain_type == ChainType.EVM:
            if not is_valid_evm_address(address):
                raise address_format_error(address)
            normalized.append(normalize_evm_address(address))
        else:
            if not is_valid_solana_address(address):
                raise InvalidAddressError(
                    f"Invalid Solana address: {address}",
                    ["Solana addresses are base58 strings of 32-44 characters"],
                    {"address": address},
                )
            normalized.append(address)

    return normalized or None


# Filter fields holding address lists, per filter entry
ADDRESS_FIELDS = ("address", "from", "to", "callFrom", "callTo", "programId")


def normalize_query_addresses(query: dict, chain_type: ChainType) -> dict:
    """
    Copy of `query` with every address list in its filter entries normalized.

    Filter sections are lists of dicts (e.g. {"logs": [{"address": [...]}]});
    anything else passes through untouched.
    """
    result = dict(query)
    for section, entries in query.items():
        if not isinstance(entries, list):
            continue
        normalized_entries = []
        for entry in entries:
            if isinstance(entry, dict):
                entry = dict(entry)
                for key in ADDRESS_FIELDS:
                    if isinstance(entry.get(key), list):
                        entry[key] = normalize_addresses(entry[key], chain_type) or []
            normalized_entries.append(entry)
        result[section] = normalized_entries
    return result
