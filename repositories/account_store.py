"""
Account persistence.

AccountStore is the narrow contract the credential service depends on:
get by identity, put a whole account back. MongoAccountStore implements it
against the `users` collection with a compare-and-swap on `version`, so two
concurrent read-modify-write cycles on one account cannot silently overwrite
each other's failure counter or challenge.
"""

from __future__ import annotations

from typing import Optional, Protocol

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from errors import IdentityTaken, StaleAccountError
from schemas.models.account import AccountDoc
from shared.logging import get_logger
from shared.validators import normalize_identity

log = get_logger(__name__)


class AccountStore(Protocol):
    async def get(self, identity: str) -> Optional[AccountDoc]: ...

    async def put(self, account: AccountDoc) -> AccountDoc: ...


class MongoAccountStore:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db["users"]

    async def get(self, identity: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"email": normalize_identity(identity)})
        return AccountDoc.from_mongo(doc)

    async def get_by_id(self, account_id: str) -> Optional[AccountDoc]:
        if not ObjectId.is_valid(account_id):
            return None
        doc = await self._col.find_one({"_id": ObjectId(account_id)})
        return AccountDoc.from_mongo(doc)

    async def get_by_github_id(self, github_id: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"github_id": github_id})
        return AccountDoc.from_mongo(doc)

    async def exists(self, identity: str) -> bool:
        doc = await self._col.find_one(
            {"email": normalize_identity(identity)}, {"_id": 1}
        )
        return doc is not None

    async def put(self, account: AccountDoc) -> AccountDoc:
        """Insert a new account or replace an existing one at its loaded version.

        Raises:
            IdentityTaken: the email is already owned by another document.
            StaleAccountError: the stored version moved since *account* was read.
        """
        if account.id is None:
            return await self._insert(account)

        expected_version = account.version
        saved = account.model_copy(update={"version": expected_version + 1})
        doc = saved.to_mongo()
        try:
            result = await self._col.replace_one(
                {"_id": account.id, "version": expected_version}, doc
            )
        except DuplicateKeyError:
            raise IdentityTaken(account.identity)
        if result.matched_count == 0:
            log.warning(
                "account_write_conflict",
                account_id=str(account.id),
                expected_version=expected_version,
            )
            raise StaleAccountError(
                "The account was modified by another request. Please retry."
            )
        return saved

    async def _insert(self, account: AccountDoc) -> AccountDoc:
        saved = account.model_copy(update={"version": 1})
        try:
            result = await self._col.insert_one(saved.to_mongo())
        except DuplicateKeyError:
            log.warning("account_insert_conflict", reason="duplicate_email")
            raise IdentityTaken(account.identity)
        return saved.model_copy(update={"id": result.inserted_id})

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        # Password accounts store github_id as null; only real ids are unique.
        await self._col.create_index(
            [("github_id", ASCENDING)],
            name="github_id_unique_when_set",
            unique=True,
            partialFilterExpression={"github_id": {"$type": "string"}},
        )
