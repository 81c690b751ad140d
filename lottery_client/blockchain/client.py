"""Blockchain client for the lottery game contract."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, TimeExhausted

from lottery_client.blockchain.wallet import SigningHandle
from lottery_client.errors import ChainUnavailable, TransactionReverted
from lottery_client.lottery.models import ChainFacts, WalletSession
from lottery_client.utils.common import ZERO_ADDRESS, same_address, shorten_eth_address
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)

MAX_PLAYERS_LIMIT = 255  # startGame takes a uint8


class TransactionHandle:
    """Submitted transaction; `wait()` resolves once it is included in a block."""

    def __init__(self, client: "ChainClient", tx_hash: str, function_name: str):
        self._client = client
        self.tx_hash = tx_hash
        self.function_name = function_name
        self._receipt: Optional[Dict[str, Any]] = None

    async def wait(self) -> Dict[str, Any]:
        if self._receipt is None:
            receipt = await self._client.wait_for_transaction(self.tx_hash)
            if receipt["status"] != 1:
                raise TransactionReverted(f"{self.function_name} reverted in block {receipt['blockNumber']}", self.tx_hash)
            self._receipt = receipt
            logger.info("%s included in block %s: %s", self.function_name, receipt["blockNumber"], self.tx_hash)
        return self._receipt

    def __repr__(self) -> str:
        return f"TransactionHandle({self.function_name}, {self.tx_hash})"


class ChainClient:
    """Async-friendly wrapper around web3.py for the lottery game contract.

    Reads go through the provider only. Writes need a SigningHandle, which
    the caller obtains explicitly from the network gate.
    """

    def __init__(self, config: Dict[str, Any], w3: Optional[Web3] = None, contract: Optional[Contract] = None):
        blockchain_cfg = config.get("blockchain", {})
        self.rpc_url: str = blockchain_cfg.get("rpc_url", "")
        self.rpc_timeout = float(blockchain_cfg.get("rpc_timeout", 10.0))
        self.chain_id: int = int(blockchain_cfg.get("chain_id", 80001))
        self.contract_address: Optional[str] = blockchain_cfg.get("contract_address")
        self.tx_timeout = int(blockchain_cfg.get("tx_timeout", 180))
        self._gas_multiplier = float(blockchain_cfg.get("gas_multiplier", 1.15))

        self._w3 = w3
        self._contract = contract
        self.contract_abi: Optional[List[Dict[str, Any]]] = None

    async def initialize(self) -> None:
        """Create the provider (unless injected) and bind the contract."""
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.rpc_timeout}))
            logger.info("Using RPC %s (chain id %s)", self.rpc_url, self.chain_id)
        if self._contract is None:
            await self._load_contract()

    async def close(self) -> None:
        """Tear down references; HTTP provider closes automatically."""
        self._contract = None
        self._w3 = None

    async def _load_contract(self) -> None:
        if not self.contract_address:
            raise ValueError("blockchain.contract_address is not configured")

        abi_path = self._resolve_abi_path()
        logger.info("Loading LotteryGame ABI from %s", abi_path)
        with abi_path.open("r", encoding="utf-8") as handle:
            self.contract_abi = json.load(handle)

        w3 = self._ensure_web3()
        address = Web3.to_checksum_address(self.contract_address)
        self._contract = w3.eth.contract(address=address, abi=self.contract_abi)
        logger.info("Contract bound at %s", address)

    def _resolve_abi_path(self) -> Path:
        path = Path(__file__).parent / "abi" / "LotteryGame.abi"
        if not path.is_file():
            raise FileNotFoundError(f"LotteryGame ABI file not found at {path}")
        return path

    def _ensure_contract(self) -> Contract:
        if not self._contract:
            raise RuntimeError("Contract not initialised")
        return self._contract

    def _ensure_web3(self) -> Web3:
        if not self._w3:
            raise RuntimeError("Web3 provider not initialised")
        return self._w3

    async def _call_view(self, function_name: str, *args) -> Any:
        contract = self._ensure_contract()

        def _call():
            return getattr(contract.functions, function_name)(*args).call()

        try:
            return await asyncio.to_thread(_call)
        except BadFunctionCallOutput:
            # empty return data: nothing has been written to the contract yet
            return None
        except Exception as exc:
            raise ChainUnavailable(f"{function_name}() call failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def is_game_started(self) -> bool:
        return bool(await self._call_view("gameStarted"))

    async def get_owner(self) -> str:
        owner = await self._call_view("owner")
        return owner or ZERO_ADDRESS

    async def is_owner(self, session: WalletSession) -> bool:
        return same_address(await self.get_owner(), session.address)

    async def read_facts(self) -> ChainFacts:
        """Read the started flag and owner together for one reconciliation tick."""
        game_started, owner = await asyncio.gather(self.is_game_started(), self.get_owner())
        return ChainFacts(game_started=game_started, owner=owner)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def start_game(self, signer: SigningHandle, max_players: int, entry_fee: int) -> TransactionHandle:
        if isinstance(max_players, bool) or not isinstance(max_players, int) or not 0 < max_players <= MAX_PLAYERS_LIMIT:
            raise ValueError(f"max_players must be an integer between 1 and {MAX_PLAYERS_LIMIT}, got {max_players!r}")
        if isinstance(entry_fee, bool) or not isinstance(entry_fee, int) or entry_fee < 0:
            raise ValueError(f"entry_fee must be a non-negative integer (wei), got {entry_fee!r}")
        return await self._send_transaction(signer, "startGame", max_players, entry_fee)

    async def join_game(self, signer: SigningHandle, value: int) -> TransactionHandle:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"value must be a non-negative integer (wei), got {value!r}")
        return await self._send_transaction(signer, "joinGame", value=value)

    async def _send_transaction(self, signer: SigningHandle, function_name: str, *args, value: int = 0) -> TransactionHandle:
        contract = self._ensure_contract()
        w3 = self._ensure_web3()

        def _build() -> Dict[str, Any]:
            tx_function = getattr(contract.functions, function_name)(*args)
            gas_estimate = tx_function.estimate_gas({"from": signer.address, "value": value})
            return tx_function.build_transaction(
                {
                    "from": signer.address,
                    "value": value,
                    "gas": int(gas_estimate * self._gas_multiplier),
                    "gasPrice": w3.eth.gas_price,
                    "nonce": w3.eth.get_transaction_count(signer.address),
                    "chainId": self.chain_id,
                }
            )

        try:
            tx = await asyncio.to_thread(_build)
        except ContractLogicError as exc:
            # gas estimation executes the call, so precondition failures surface here
            raise TransactionReverted(f"{function_name} would revert: {exc}") from exc

        tx_hash = await signer.send_transaction(tx)
        logger.info("Submitted %s from %s: %s", function_name, shorten_eth_address(signer.address), tx_hash)
        return TransactionHandle(self, tx_hash, function_name)

    async def wait_for_transaction(self, tx_hash: str, timeout: Optional[int] = None) -> Dict[str, Any]:
        w3 = self._ensure_web3()
        timeout = self.tx_timeout if timeout is None else timeout

        def _wait():
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
            return {
                "status": int(receipt["status"]),
                "blockNumber": int(receipt["blockNumber"]),
                "transactionHash": w3.to_hex(receipt["transactionHash"]),
                "gasUsed": int(receipt["gasUsed"]),
            }

        try:
            return await asyncio.to_thread(_wait)
        except TimeExhausted as exc:
            raise ChainUnavailable(f"Transaction {tx_hash} not included after {timeout}s") from exc

    def get_client_status(self) -> Dict[str, Any]:
        return {
            "rpcUrl": self.rpc_url,
            "chainId": self.chain_id,
            "contract": self.contract_address,
        }
