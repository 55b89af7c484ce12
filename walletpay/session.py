"""Session manager: current-user identity and the login/logout lifecycle.

State moves ``UNINITIALIZED -> LOADING -> AUTHENTICATED | ANONYMOUS``. A
failed profile fetch at startup wipes the stored credentials; a failed
refresh during an active session only logs and keeps the stale profile, so
the caller can react to the error first.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .credentials import CredentialPair
from .errors import EndpointUnavailableError, RequestError
from .gateway import RequestGateway
from .models import RefreshResponse, Session, TokenResponse, UserProfile

logger = logging.getLogger(__name__)

LOGIN_PATH = "/accounts/login/"
PROFILE_PATH = "/accounts/me/"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionManager:
    def __init__(self, gateway: RequestGateway, store, refresh_path: Optional[str] = None):
        self.gateway = gateway
        self.store = store
        self.refresh_path = refresh_path
        self.state = SessionState.UNINITIALIZED
        self.session: Optional[Session] = None
        self._listeners: List[Callable[[SessionState], None]] = []
        self._refresh_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    def subscribe(self, callback: Callable[[SessionState], None]) -> Callable[[], None]:
        """Call ``callback(state)`` on every transition. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _transition(self, state: SessionState, session: Optional[Session] = None) -> None:
        self.state = state
        self.session = session
        logger.debug(f"session -> {state.value}", extra={"state": state.value})
        for cb in list(self._listeners):
            cb(state)

    async def _fetch_profile(self) -> Session:
        profile = await self.gateway.call_model(PROFILE_PATH, UserProfile)
        return Session.from_profile(profile)

    # ------------------------
    # lifecycle
    # ------------------------
    async def init(self) -> SessionState:
        """Exchange a stored credential pair for a live profile."""
        if self.store.get() is None:
            self._transition(SessionState.ANONYMOUS)
            return self.state
        self._transition(SessionState.LOADING)
        try:
            session = await self._fetch_profile()
        except RequestError as e:
            logger.warning(f"stored session rejected, signing out: {e.message}", extra={"error_code": e.code, "status": e.status})
            self.store.clear()
            self._transition(SessionState.ANONYMOUS)
            return self.state
        self._transition(SessionState.AUTHENTICATED, session)
        return self.state

    async def dispose(self) -> None:
        await self.gateway.close()
        self._listeners.clear()
        self.state = SessionState.UNINITIALIZED
        self.session = None

    # ------------------------
    # operations
    # ------------------------
    async def login(self, email: str, password: str) -> bool:
        """True only when both the token exchange and the profile fetch succeed.

        On failure the store goes back to whatever it held before, and state
        and session are untouched.
        """
        previous = self.store.get()
        try:
            tokens = await self.gateway.call_model(
                LOGIN_PATH, TokenResponse, "POST", {"email": email, "password": password}, auth=False
            )
        except RequestError as e:
            logger.info(f"login rejected: {e.message}", extra={"error_code": e.code, "status": e.status})
            return False

        self.store.set(CredentialPair(access=tokens.access, refresh=tokens.refresh))
        try:
            session = await self._fetch_profile()
        except RequestError as e:
            logger.info(f"profile fetch after login failed: {e.message}", extra={"error_code": e.code, "status": e.status})
            if previous is None:
                self.store.clear()
            else:
                self.store.set(previous)
            return False
        self._transition(SessionState.AUTHENTICATED, session)
        return True

    def logout(self) -> None:
        self.store.clear()
        self._transition(SessionState.ANONYMOUS)

    async def refresh_profile(self) -> bool:
        try:
            session = await self._fetch_profile()
        except RequestError as e:
            logger.warning(f"profile refresh failed, keeping current session: {e.message}", extra={"error_code": e.code, "status": e.status})
            return False
        self._transition(SessionState.AUTHENTICATED, session)
        return True

    async def refresh_tokens(self) -> bool:
        """Trade the refresh token for a new pair. Used as the gateway's 401 hook."""
        stale = self.store.get()
        if not self.refresh_path or stale is None:
            return False
        async with self._refresh_lock:
            pair = self.store.get()
            if pair is None:
                return False
            if pair != stale:
                # renewed by a concurrent 401 while we waited
                return True
            try:
                resp = await self.gateway.call_model(
                    self.refresh_path, RefreshResponse, "POST", {"refresh": pair.refresh}, auth=False
                )
            except RequestError as e:
                logger.info(f"token refresh failed: {e.message}", extra={"error_code": e.code, "status": e.status})
                return False
            self.store.set(CredentialPair(access=resp.access, refresh=resp.refresh or pair.refresh))
        return True

    def update_profile(self, changes: Dict[str, Any]) -> bool:
        """Merge ``changes`` into the local session only; nothing is sent to the backend."""
        if self.session is None:
            return False
        fields = {k: v for k, v in changes.items() if k in Session.model_fields and k != "id"}
        logger.warning("profile update applied locally only; no backend endpoint")
        self._transition(self.state, self.session.model_copy(update=fields))
        return True

    # no backend endpoints for these yet
    async def register(self, **data: Any) -> bool:
        raise EndpointUnavailableError("Registration is not available yet")

    async def reset_password(self, email: str) -> bool:
        raise EndpointUnavailableError("Password reset is not available yet")

    async def change_password(self, current_password: str, new_password: str) -> bool:
        raise EndpointUnavailableError("Password change is not available yet")
