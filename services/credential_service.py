"""
CredentialService: identity-keyed, persistent front for the state machine.

Each call loads the account, runs one CredentialStateMachine step and writes
the resulting account back when the step changed it. Steps that hash or
verify a password run in a worker thread so argon2 never blocks the event
loop. Expected failures come back inside the Transition's Outcome; store
errors (including StaleAccountError on a lost compare-and-swap) propagate.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Protocol

from repositories.account_store import AccountStore
from schemas.models.account import AccountDoc, ChallengePurpose
from services.credentials import CredentialStateMachine, Outcome, Transition
from shared.validators import normalize_identity


class LookupAccountStore(AccountStore, Protocol):
    async def get_by_id(self, account_id: str) -> Optional[AccountDoc]: ...

    async def get_by_github_id(self, github_id: str) -> Optional[AccountDoc]: ...

    async def exists(self, identity: str) -> bool: ...


class CredentialService:
    def __init__(
        self, store: LookupAccountStore, machine: CredentialStateMachine
    ) -> None:
        self._store = store
        self._machine = machine

    @property
    def machine(self) -> CredentialStateMachine:
        return self._machine

    async def _commit(self, transition: Transition[Any]) -> Transition[Any]:
        if not transition.changed or transition.account is None:
            return transition
        saved = await self._store.put(transition.account)
        outcome = transition.outcome
        if outcome.ok and isinstance(outcome.value, AccountDoc):
            outcome = Outcome.success(saved)
        return Transition(saved, outcome, changed=True)

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def get(self, identity: str) -> Optional[AccountDoc]:
        return await self._store.get(normalize_identity(identity))

    async def get_by_id(self, account_id: str) -> Optional[AccountDoc]:
        return await self._store.get_by_id(account_id)

    async def save(self, account: AccountDoc) -> AccountDoc:
        """Persist non-credential changes (profile names, last login stamp)."""
        return await self._store.put(account)

    # ── State machine operations ─────────────────────────────────────────────

    async def register(
        self, identity: str, raw_password: str, **profile: Any
    ) -> Transition[str]:
        identity = normalize_identity(identity)
        existing = await self._store.get(identity)
        transition = await asyncio.to_thread(
            self._machine.register, existing, identity, raw_password, **profile
        )
        return await self._commit(transition)

    async def attempt_password(
        self, identity: str, raw_password: str, remember: bool = False
    ) -> Transition[AccountDoc]:
        account = await self._store.get(normalize_identity(identity))
        transition = await asyncio.to_thread(
            self._machine.attempt_password, account, raw_password, remember
        )
        return await self._commit(transition)

    async def issue_challenge(
        self,
        identity: str,
        purpose: ChallengePurpose,
        ttl_minutes: Optional[int] = None,
    ) -> Transition[str]:
        account = await self._store.get(normalize_identity(identity))
        return await self._commit(
            self._machine.issue_challenge(account, purpose, ttl_minutes)
        )

    async def consume_challenge(
        self, identity: str, code: str, purpose: ChallengePurpose
    ) -> Transition[AccountDoc]:
        account = await self._store.get(normalize_identity(identity))
        return await self._commit(
            self._machine.consume_challenge(account, code, purpose)
        )

    async def change_credential(
        self, identity: str, new_raw_password: str
    ) -> Transition[AccountDoc]:
        account = await self._store.get(normalize_identity(identity))
        transition = await asyncio.to_thread(
            self._machine.change_credential, account, new_raw_password
        )
        return await self._commit(transition)

    async def confirm_external_identity(
        self,
        identity: str,
        github_id: str,
        github_username: Optional[str] = None,
        first_name: str = "",
        last_name: str = "",
    ) -> Transition[AccountDoc]:
        """Resolve the GitHub id first, then the email, before linking."""
        account = await self._store.get_by_github_id(github_id)
        if account is None:
            account = await self._store.get(normalize_identity(identity))
        return await self._commit(
            self._machine.confirm_external_identity(
                account,
                identity,
                github_id,
                github_username=github_username,
                first_name=first_name,
                last_name=last_name,
            )
        )

    async def change_identity(
        self, identity: str, new_identity: str
    ) -> Transition[str]:
        account = await self._store.get(normalize_identity(identity))
        new_identity = normalize_identity(new_identity)
        taken = await self._store.exists(new_identity)
        return await self._commit(
            self._machine.change_identity(account, new_identity, taken)
        )

    async def unlock(self, identity: str) -> Transition[AccountDoc]:
        account = await self._store.get(normalize_identity(identity))
        return await self._commit(self._machine.unlock(account))
