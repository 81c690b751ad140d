"""Lottery game client: keeps a consistent view of an on-chain lottery round."""

from lottery_client.blockchain.client import ChainClient, TransactionHandle
from lottery_client.blockchain.network import NetworkGate
from lottery_client.blockchain.wallet import LocalAccountWallet, SigningHandle, Wallet
from lottery_client.errors import (
    ChainUnavailable,
    ConnectionRejected,
    IndexUnavailable,
    LotteryClientError,
    NetworkMismatch,
    NoSignerAvailable,
    TransactionFailed,
    TransactionRejected,
    TransactionReverted,
)
from lottery_client.indexer.client import IndexClient
from lottery_client.lottery.engine import LotteryGameEngine
from lottery_client.lottery.models import (
    ChainFacts,
    ConnectionState,
    GameView,
    PendingAction,
    RoundRecord,
    WalletSession,
)
from lottery_client.lottery.poller import Poller
from lottery_client.lottery.reconciler import Reconciler
from lottery_client.lottery.state_machine import Affordance, AffordanceKind, derive_affordance
from lottery_client.utils.config import load_config

__version__ = "0.1.0"
