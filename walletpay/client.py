"""High-level wallet client: wires the store, gateway, session and readers together."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Union

from .config import Settings, get_settings
from .credentials import CredentialStore
from .gateway import RequestGateway
from .models import LedgerEntry, TransferOutcome
from .session import SessionManager, SessionState
from .transactions import LedgerReader, TransferRequest, TransferSubmitter
from .wallet import BalanceReader

logger = logging.getLogger(__name__)


class WalletClient:
    """One instance per process. Use as ``async with WalletClient() as client``."""

    def __init__(self, settings: Optional[Settings] = None, store=None, gateway: Optional[RequestGateway] = None):
        self.settings = settings or get_settings()
        self.store = store if store is not None else CredentialStore(
            self.settings.credentials_path, self.settings.storage_secret
        )
        self.gateway = gateway or RequestGateway(self.settings.api_base_url, self.store, timeout=self.settings.timeout)
        self.session = SessionManager(self.gateway, self.store, refresh_path=self.settings.token_refresh_path)
        if self.settings.token_refresh_path:
            self.gateway.on_unauthorized = self.session.refresh_tokens
        self.balance = BalanceReader(self.gateway)
        self.ledger = LedgerReader(self.gateway)
        self.transfers = TransferSubmitter(self.gateway, self.balance)

    async def init(self) -> SessionState:
        if self.settings.insecure_transport:
            logger.warning(f"using insecure HTTP connection to {self.settings.api_base_url}")
        return await self.session.init()

    async def dispose(self) -> None:
        await self.session.dispose()

    async def __aenter__(self) -> "WalletClient":
        await self.init()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.dispose()

    # ------------------------
    # shortcuts for the front end
    # ------------------------
    async def login(self, email: str, password: str) -> bool:
        return await self.session.login(email, password)

    def logout(self) -> None:
        self.session.logout()
        self.balance.invalidate()

    async def get_balance(self) -> Decimal:
        return await self.balance.fetch()

    async def get_ledger(self) -> List[LedgerEntry]:
        return await self.ledger.fetch()

    async def prepare_transfer(self, receiver_id: str, amount: Union[str, Decimal]) -> TransferRequest:
        return await self.transfers.prepare(receiver_id, amount)

    async def send_transfer(self, request: TransferRequest) -> TransferOutcome:
        return await self.transfers.send(request)

    async def transfer(self, receiver_id: str, amount: Union[str, Decimal]) -> TransferOutcome:
        return await self.transfers.submit(receiver_id, amount)
