"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fakes and fixtures shared by the engine-level tests.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from web3 import Web3

from lottery_client.errors import TransactionRejected, TransactionReverted
from lottery_client.lottery.models import ChainFacts, RoundRecord

OWNER = Web3.to_checksum_address("0x" + "0a" * 20)
PLAYER = Web3.to_checksum_address("0x" + "b1" * 20)
OTHER_PLAYER = Web3.to_checksum_address("0x" + "c2" * 20)
TX_HASH = "0x" + "ab" * 32


class FakeWallet:
    """Wallet double; `connect_gate` lets a test hold the approval prompt open."""

    def __init__(self, address: str = PLAYER, chain_id: int = 80001, can_sign: bool = True) -> None:
        self.address = address
        self.chain_id = chain_id
        self._can_sign = can_sign
        self.reject_transactions = False
        self.connect_gate: Optional[asyncio.Event] = None
        self.sent: List[Dict[str, Any]] = []

    async def request_accounts(self) -> List[str]:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        return [self.address]

    async def get_chain_id(self) -> int:
        return self.chain_id

    def can_sign(self) -> bool:
        return self._can_sign

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        if self.reject_transactions:
            raise TransactionRejected("User denied transaction signature")
        self.sent.append(tx)
        return TX_HASH


class FakeHandle:
    def __init__(self, chain: "FakeChain", function_name: str) -> None:
        self.chain = chain
        self.function_name = function_name
        self.tx_hash = TX_HASH

    async def wait(self) -> Dict[str, Any]:
        if self.chain.mined is not None:
            await self.chain.mined.wait()
        if self.chain.wait_error is not None:
            raise self.chain.wait_error
        if self.chain.receipt_status != 1:
            raise TransactionReverted(f"{self.function_name} reverted", self.tx_hash)
        return {"status": 1, "blockNumber": 10, "transactionHash": self.tx_hash, "gasUsed": 50000}


class FakeChain:
    """ChainClient double with switchable facts, failures and mining."""

    def __init__(self) -> None:
        self.game_started = False
        self.owner = OWNER
        self.fail: Optional[Exception] = None
        self.receipt_status = 1
        self.wait_error: Optional[Exception] = None
        self.mined: Optional[asyncio.Event] = None
        self.reads = 0
        self.initialized = False
        self.submitted: List[tuple] = []

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False

    async def read_facts(self) -> ChainFacts:
        self.reads += 1
        if self.fail is not None:
            raise self.fail
        return ChainFacts(game_started=self.game_started, owner=self.owner)

    async def start_game(self, signer, max_players: int, entry_fee: int) -> FakeHandle:
        await signer.send_transaction({"fn": "startGame", "args": (max_players, entry_fee)})
        self.submitted.append(("startGame", max_players, entry_fee))
        return FakeHandle(self, "startGame")

    async def join_game(self, signer, value: int) -> FakeHandle:
        await signer.send_transaction({"fn": "joinGame", "value": value})
        self.submitted.append(("joinGame", value))
        return FakeHandle(self, "joinGame")

    def get_client_status(self) -> Dict[str, Any]:
        return {"chainId": 80001}


class FakeIndexer:
    """IndexClient double; `gate` holds fetches open until the test releases it."""

    def __init__(self, record: Optional[RoundRecord] = None) -> None:
        self.record = record
        self.fail: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.fetches = 0
        self.closed = False

    async def fetch_latest_round(self) -> Optional[RoundRecord]:
        self.fetches += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail is not None:
            raise self.fail
        return self.record

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> Dict[str, Any]:
    return {
        "blockchain": {"chain_id": 80001, "network_name": "Mumbai", "contract_address": OWNER},
        "indexer": {"endpoint": "http://indexer.test/graphql"},
        "poller": {"interval_sec": 3600},
    }


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture
def open_round() -> RoundRecord:
    return RoundRecord(round_id="7", entry_fee=1000, max_players=3, players=(PLAYER, OTHER_PLAYER))


@pytest.fixture
def ended_round() -> RoundRecord:
    return RoundRecord(round_id="6", entry_fee=1000, max_players=2, players=(PLAYER, OTHER_PLAYER), winner=OTHER_PLAYER)
