"""Error taxonomy shared by the lottery client components."""

from typing import Optional


class LotteryClientError(Exception):
    """Base class for every error raised by the lottery client."""


class NetworkMismatch(LotteryClientError):
    """The wallet is connected to a chain other than the configured one."""

    def __init__(self, expected_chain_id: int, actual_chain_id: int, network_name: str = ""):
        self.expected_chain_id = expected_chain_id
        self.actual_chain_id = actual_chain_id
        self.network_name = network_name
        target = network_name or f"chain {expected_chain_id}"
        super().__init__(f"Change the network to {target} (wallet is on chain {actual_chain_id})")


class ConnectionRejected(LotteryClientError):
    """The user declined to connect the wallet."""


class NoSignerAvailable(LotteryClientError):
    """The session cannot sign transactions; reads keep working."""


class TransactionFailed(LotteryClientError):
    """A write operation did not make it on chain."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class TransactionRejected(TransactionFailed):
    """The user declined the transaction in the wallet."""


class TransactionReverted(TransactionFailed):
    """The contract rejected the call (failed precondition)."""


class IndexUnavailable(LotteryClientError):
    """The index service could not be queried or returned garbage."""


class ChainUnavailable(LotteryClientError):
    """A contract read failed at the transport level."""
