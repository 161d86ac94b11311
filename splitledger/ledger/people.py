"""People the owner splits expenses with."""

from typing import Optional

from splitledger.audit import AuditLogger
from splitledger.models.ledger import OWNER_ID, Person
from splitledger.services.storage import PeopleStorageInterface, StorageError


class LedgerError(Exception):
    """Base exception for ledger rules that aren't split validation."""
    pass


class ProtectedPersonError(LedgerError):
    """The device owner can't be deleted."""
    pass


class PeopleService:
    """Add, list and remove people."""

    def __init__(
        self,
        storage: PeopleStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def add_person(self, display_name: str, email: Optional[str] = None) -> Person:
        """
        Add a person.

        Raises:
            ValueError: If the name is blank after trimming
        """
        person = Person(display_name=display_name, email=email)
        await self._storage.add_person(person)
        if self._audit_logger:
            await self._audit_logger.log_person_added(person.id, person.display_name)
        return person

    async def get_person(self, person_id: str) -> Optional[Person]:
        return await self._storage.get_person(person_id)

    async def list_people(self) -> list[Person]:
        """Everyone except the owner, by name."""
        return await self._storage.list_people(include_owner=False)

    async def list_all_people(self) -> list[Person]:
        """The owner first, then everyone else by name (for member pickers)."""
        return await self._storage.list_people(include_owner=True)

    async def delete_person(self, person_id: str) -> bool:
        """
        Remove a person together with their expense shares and every
        settlement they paid or received. All or nothing.

        Expenses they paid stay, with no payer. Other participants of
        expenses they shared keep their rows untouched.

        Raises:
            ProtectedPersonError: For the owner
            TransactionError: If the delete failed (nothing was removed)
        """
        if person_id == OWNER_ID:
            raise ProtectedPersonError("The device owner can't be deleted")

        try:
            deleted = await self._storage.delete_person(person_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_failed("delete_person", e, person_id)
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log_person_deleted(person_id)
        return deleted
