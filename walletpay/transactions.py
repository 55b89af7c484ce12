"""Ledger listing and money transfers.

A transfer is checked locally first (receiver, amount, last known balance);
a request that fails those checks never reaches the network. Each
``TransferRequest`` carries one idempotency key for its whole life, so
sending the same request again is a safe retry while ``submit`` always
starts a new attempt with a new key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Union

from . import idempotency
from .errors import FetchError, RequestError, TransferFailedError, TransferValidationError
from .gateway import RequestGateway
from .models import LedgerEntry, LedgerList, TransferOutcome
from .wallet import BalanceReader

logger = logging.getLogger(__name__)

LEDGER_PATH = "/transactions/ledgerEntry"
TRANSFER_PATH = "/transactions/transfer/"


class LedgerReader:
    def __init__(self, gateway: RequestGateway):
        self.gateway = gateway

    async def fetch(self) -> List[LedgerEntry]:
        """All entries of the active wallet, in the order the server sent them."""
        try:
            return await self.gateway.call_model(LEDGER_PATH, LedgerList)
        except RequestError as e:
            raise FetchError(e.message) from e


@dataclass(frozen=True)
class TransferRequest:
    receiver_id: str
    amount: Decimal
    idempotency_key: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "receiver_id": self.receiver_id,
            "amount": self.amount,
            "idempotency_key": self.idempotency_key,
        }


def parse_amount(raw: Union[str, int, float, Decimal]) -> Decimal:
    if isinstance(raw, bool):
        raise TransferValidationError("Amount must be a number", "amount")
    try:
        # floats go through str() so 0.1 stays 0.1
        amount = Decimal(str(raw).strip()) if not isinstance(raw, Decimal) else raw
    except (InvalidOperation, ValueError):
        raise TransferValidationError("Amount must be a number", "amount") from None
    if not amount.is_finite():
        raise TransferValidationError("Amount must be a number", "amount")
    if amount <= 0:
        raise TransferValidationError("Amount must be greater than zero", "amount")
    return amount


class TransferSubmitter:
    def __init__(self, gateway: RequestGateway, balance: BalanceReader):
        self.gateway = gateway
        self.balance = balance

    async def _known_balance(self) -> Decimal:
        snapshot = self.balance.last_snapshot
        if snapshot is not None:
            return snapshot
        try:
            return await self.balance.fetch()
        except FetchError as e:
            raise TransferFailedError(f"Could not check balance: {e.message}") from e

    async def prepare(self, receiver_id: str, amount: Union[str, int, float, Decimal]) -> TransferRequest:
        """Validate the transfer and assign its idempotency key."""
        receiver = (receiver_id or "").strip()
        if not receiver:
            raise TransferValidationError("Receiver wallet ID is required", "receiver_id")
        value = parse_amount(amount)
        known = await self._known_balance()
        if value > known:
            raise TransferValidationError("Insufficient balance", "amount")
        return TransferRequest(receiver_id=receiver, amount=value, idempotency_key=idempotency.new_key())

    async def send(self, request: TransferRequest) -> TransferOutcome:
        """One POST for ``request``. Calling again with the same request is a retry of the same attempt."""
        try:
            outcome = await self.gateway.call_model(TRANSFER_PATH, TransferOutcome, "POST", request.to_payload())
        except RequestError as e:
            logger.info(f"transfer rejected: {e.message}", extra={"path": TRANSFER_PATH, "status": e.status, "error_code": e.code})
            raise TransferFailedError(e.message, status=e.status) from e
        self.balance.invalidate()
        logger.info(f"transfer {outcome.transaction_id} {outcome.status}", extra={"path": TRANSFER_PATH})
        return outcome

    async def submit(self, receiver_id: str, amount: Union[str, int, float, Decimal]) -> TransferOutcome:
        return await self.send(await self.prepare(receiver_id, amount))
