"""Common utility functions for the lottery client."""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def shorten_eth_address(address: str) -> str:
    """Shorten an Ethereum address for display: '0x123456...abcd'.
    Returns the first 6 and last 4 characters, separated by '...'.
    Handles addresses with or without '0x' prefix.
    """
    if not address:
        return ""
    addr = address.lower()
    if addr.startswith("0x"):
        addr = addr[2:]
    # Always add 0x prefix
    if len(addr) < 10:
        return f"0x{addr}"  # too short to shorten, but ensure 0x
    return f"0x{addr[:6]}...{addr[-4:]}"


def same_address(first: Optional[str], second: Optional[str]) -> bool:
    """Case-insensitive address comparison; empty values never match."""
    if not first or not second:
        return False
    return first.lower() == second.lower()


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def parse_entry_fee(value: Union[str, int, float, Decimal, None]) -> int:
    """Convert an entry fee typed in ether into wei.

    Empty, malformed or negative input yields zero, matching the start-game
    form which never submits a negative fee.
    """
    if value is None:
        return 0
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return 0
    if not amount.is_finite() or amount < 0:
        return 0
    return int(Web3.to_wei(amount, "ether"))


def format_entry_fee(wei: int) -> str:
    """Render a wei amount as an ether string, e.g. '0.01 ETH'."""
    ether = Decimal(Web3.from_wei(int(wei), "ether"))
    return f"{ether.normalize():f} ETH"
