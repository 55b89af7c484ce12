"""Wallet balance reads."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .errors import FetchError, RequestError
from .gateway import RequestGateway
from .models import BalanceResponse

logger = logging.getLogger(__name__)

BALANCE_PATH = "/wallets/balance/"


class BalanceReader:
    """Point-in-time balance snapshots. Refetch after anything that moves money."""

    def __init__(self, gateway: RequestGateway):
        self.gateway = gateway
        self.last_snapshot: Optional[Decimal] = None
        self._issued = 0
        self._applied = 0

    async def fetch(self) -> Decimal:
        self._issued += 1
        generation = self._issued
        try:
            resp = await self.gateway.call_model(BALANCE_PATH, BalanceResponse)
        except RequestError as e:
            raise FetchError(e.message) from e
        # a slower, older request must not overwrite a newer snapshot
        if generation > self._applied:
            self._applied = generation
            self.last_snapshot = resp.wallet_balance
        return resp.wallet_balance

    def invalidate(self) -> None:
        self.last_snapshot = None
        self._applied = self._issued
