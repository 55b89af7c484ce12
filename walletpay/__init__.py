"""Async client for the wallet/payments API."""

from .client import WalletClient
from .credentials import CredentialPair, CredentialStore, MemoryCredentialStore
from .errors import (
    EndpointUnavailableError,
    FetchError,
    RequestError,
    SchemaMismatchError,
    TransferError,
    TransferFailedError,
    TransferValidationError,
    WalletClientError,
)
from .gateway import RequestGateway
from .models import EntryType, LedgerEntry, Session, TransferOutcome
from .session import SessionManager, SessionState
from .transactions import LedgerReader, TransferRequest, TransferSubmitter
from .wallet import BalanceReader

__version__ = "0.1.0"

__all__ = [
    "BalanceReader",
    "CredentialPair",
    "CredentialStore",
    "EndpointUnavailableError",
    "EntryType",
    "FetchError",
    "LedgerEntry",
    "LedgerReader",
    "MemoryCredentialStore",
    "RequestError",
    "RequestGateway",
    "SchemaMismatchError",
    "Session",
    "SessionManager",
    "SessionState",
    "TransferError",
    "TransferFailedError",
    "TransferOutcome",
    "TransferRequest",
    "TransferSubmitter",
    "TransferValidationError",
    "WalletClient",
    "WalletClientError",
]
