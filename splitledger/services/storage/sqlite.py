"""
SQLite Storage Implementation

DESIGN DECISION: An embedded SQLite file is the storage backend because:
1. The ledger belongs to one device owner, accessed from one process
2. No database server to set up
3. Real transactions and foreign keys keep the money invariants intact
4. Easy to back up (it's one file)

Every multi-statement write runs inside engine.begin(): it either commits as
a whole or rolls back as a whole. Failures surface as TransactionError,
DuplicateError or NotFoundError; nothing is retried here.

The implementation follows the abstract interfaces, so the ledger services
never see SQL.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from sqlalchemy import (
    and_,
    case,
    collate,
    create_engine,
    delete,
    event,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from splitledger.config import StorageSettings, get_settings
from splitledger.models.ledger import (
    OWNER_ID,
    TEMPLATE_MONTH,
    Budget,
    BudgetUsage,
    ExpenseParticipant,
    ParticipantShare,
    Person,
    PersonalSpend,
    PersonExpenseLine,
    Settlement,
    SharedExpense,
)
from splitledger.services.storage.interface import (
    BudgetStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    PeopleStorageInterface,
    StorageConnectionError,
    StorageError,
    TransactionError,
)
from splitledger.services.storage.schema import (
    budgets,
    expense_participants,
    expenses,
    metadata,
    personal_spend,
    settlements,
    users,
)


BUDGET_UPDATABLE_FIELDS = {"name", "amount"}
SPEND_UPDATABLE_FIELDS = {"amount", "budget_id", "note"}


def _by_name(column):
    return collate(column, "NOCASE").asc()


class SQLiteLedgerClient:
    """
    Low-level SQLite engine wrapper.

    Opens the database, enables foreign keys, creates the schema and seeds
    the owner row. Opening is retried because a second process (a backup
    tool, a test runner) may briefly hold the file lock.
    """

    def __init__(
        self,
        settings: Optional[StorageSettings] = None,
        owner_display_name: Optional[str] = None,
    ):
        self._settings = settings or get_settings().storage
        self._owner_display_name = (
            owner_display_name or get_settings().ledger.owner_display_name
        )
        self._engine: Optional[Engine] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    def connect(self) -> Engine:
        """
        Open the ledger database (once) and make sure the schema exists.
        """
        if self._engine is None:
            engine = self._create_engine()
            try:
                metadata.create_all(engine)
                self._seed_owner(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                raise StorageConnectionError(
                    f"Failed to open ledger database {self._settings.url}: {e}"
                ) from e
            self._engine = engine

        return self._engine

    def _create_engine(self) -> Engine:
        kwargs: dict[str, Any] = {"echo": self._settings.echo}
        if self._settings.is_memory:
            # One shared connection, otherwise every checkout is a new empty database
            kwargs["connect_args"] = {"check_same_thread": False}
            kwargs["poolclass"] = StaticPool

        engine = create_engine(self._settings.url, **kwargs)
        use_wal = self._settings.wal and not self._settings.is_memory

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if use_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    def _seed_owner(self, engine: Engine) -> None:
        with engine.begin() as conn:
            conn.execute(
                sqlite_insert(users)
                .values(id=OWNER_ID, display_name=self._owner_display_name, email=None)
                .on_conflict_do_nothing(index_elements=["id"])
            )

    def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class SQLiteLedgerStorage(
    PeopleStorageInterface,
    ExpenseStorageInterface,
    BudgetStorageInterface,
):
    """
    SQLite implementation of all ledger storage interfaces.

    Money is stored as REAL dollars; the services guarantee that what is
    written already balances to the cent.
    """

    def __init__(self, client: Optional[SQLiteLedgerClient] = None):
        self._client = client or SQLiteLedgerClient()

    @property
    def engine(self) -> Engine:
        return self._client.connect()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        """Run the block as one transaction; any failure rolls it all back."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except StorageError:
            raise
        except IntegrityError as e:
            if "UNIQUE constraint failed" in str(e.orig):
                raise DuplicateError(f"Failed to {operation}: {e.orig}") from e
            raise TransactionError(f"Failed to {operation}: {e.orig}") from e
        except Exception as e:
            raise TransactionError(f"Failed to {operation}, rolled back: {e}") from e

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except StorageError:
            raise
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to {operation}: {e}") from e

    # =========================================================================
    # Row conversion
    # =========================================================================

    @staticmethod
    def _row_to_person(row) -> Person:
        return Person(id=row.id, display_name=row.display_name, email=row.email)

    @staticmethod
    def _row_to_expense(row) -> SharedExpense:
        return SharedExpense(
            id=row.id,
            description=row.description,
            category=row.category,
            amount=row.amount,
            currency=row.currency,
            date=row.date,
            created_by=row.created_by,
            payer_id=row.payer_id,
        )

    @staticmethod
    def _row_to_settlement(row) -> Settlement:
        return Settlement(
            id=row.id,
            payer_id=row.payer_id,
            payee_id=row.payee_id,
            amount=row.amount,
            date=row.date,
            note=row.note,
        )

    @staticmethod
    def _row_to_budget(row) -> Budget:
        return Budget(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            month=row.month,
            amount=row.amount,
        )

    @staticmethod
    def _row_to_spend(row) -> PersonalSpend:
        return PersonalSpend(
            id=row.id,
            user_id=row.user_id,
            amount=row.amount,
            budget_id=row.budget_id,
            category=row.category,
            date=row.date,
            note=row.note,
        )

    # =========================================================================
    # People
    # =========================================================================

    async def add_person(self, person: Person) -> bool:
        with self._transaction("add person") as conn:
            conn.execute(insert(users).values(**person.model_dump()))
        return True

    async def get_person(self, person_id: str) -> Optional[Person]:
        with self._reading("get person") as conn:
            row = conn.execute(select(users).where(users.c.id == person_id)).first()
        return self._row_to_person(row) if row else None

    async def list_people(self, include_owner: bool = False) -> list[Person]:
        stmt = select(users)
        if include_owner:
            stmt = stmt.order_by(
                case((users.c.id == OWNER_ID, 0), else_=1),
                _by_name(users.c.display_name),
            )
        else:
            stmt = stmt.where(users.c.id != OWNER_ID).order_by(_by_name(users.c.display_name))

        with self._reading("list people") as conn:
            return [self._row_to_person(row) for row in conn.execute(stmt)]

    async def delete_person(self, person_id: str) -> bool:
        with self._transaction("delete person") as conn:
            conn.execute(
                delete(expense_participants).where(expense_participants.c.user_id == person_id)
            )
            conn.execute(
                delete(settlements).where(
                    or_(settlements.c.payer_id == person_id, settlements.c.payee_id == person_id)
                )
            )
            result = conn.execute(delete(users).where(users.c.id == person_id))
            found = result.rowcount > 0
        return found

    # =========================================================================
    # Shared expenses
    # =========================================================================

    async def insert_expense(
        self,
        expense: SharedExpense,
        participants: list[ExpenseParticipant],
    ) -> bool:
        with self._transaction("insert expense") as conn:
            conn.execute(insert(expenses).values(**expense.model_dump()))
            if participants:
                conn.execute(
                    insert(expense_participants),
                    [p.model_dump() for p in participants],
                )
        return True

    async def replace_expense(
        self,
        expense: SharedExpense,
        participants: list[ExpenseParticipant],
    ) -> bool:
        with self._transaction("replace expense") as conn:
            result = conn.execute(
                update(expenses)
                .where(expenses.c.id == expense.id)
                .values(
                    description=expense.description,
                    category=expense.category,
                    amount=expense.amount,
                    date=expense.date,
                    payer_id=expense.payer_id,
                )
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Expense not found: {expense.id}")

            conn.execute(
                delete(expense_participants).where(expense_participants.c.expense_id == expense.id)
            )
            if participants:
                conn.execute(
                    insert(expense_participants),
                    [p.model_dump() for p in participants],
                )
        return True

    async def delete_expense(self, expense_id: str) -> bool:
        with self._transaction("delete expense") as conn:
            conn.execute(
                delete(expense_participants).where(expense_participants.c.expense_id == expense_id)
            )
            result = conn.execute(delete(expenses).where(expenses.c.id == expense_id))
            found = result.rowcount > 0
        return found

    async def get_expense(self, expense_id: str) -> Optional[SharedExpense]:
        with self._reading("get expense") as conn:
            row = conn.execute(select(expenses).where(expenses.c.id == expense_id)).first()
        return self._row_to_expense(row) if row else None

    async def list_participants(self, expense_id: str) -> list[ParticipantShare]:
        ep = expense_participants
        stmt = (
            select(ep.c.user_id, ep.c.share, users.c.display_name.label("name"))
            .select_from(ep.join(users, users.c.id == ep.c.user_id))
            .where(ep.c.expense_id == expense_id)
            .order_by(_by_name(users.c.display_name))
        )
        with self._reading("list participants") as conn:
            return [
                ParticipantShare(user_id=row.user_id, share=row.share, name=row.name)
                for row in conn.execute(stmt)
            ]

    async def list_recent_expenses(self, limit: int = 30) -> list[SharedExpense]:
        stmt = select(expenses).order_by(expenses.c.date.desc()).limit(limit)
        with self._reading("list recent expenses") as conn:
            return [self._row_to_expense(row) for row in conn.execute(stmt)]

    async def list_expenses_for_person(
        self,
        person_id: str,
        limit: int = 20,
    ) -> list[PersonExpenseLine]:
        ep = expense_participants
        joined = expenses.outerjoin(
            ep,
            and_(ep.c.expense_id == expenses.c.id, ep.c.user_id == person_id),
        )
        stmt = (
            select(expenses, ep.c.share.label("person_share"))
            .select_from(joined)
            .where(or_(ep.c.user_id.is_not(None), expenses.c.payer_id == person_id))
            .order_by(expenses.c.date.desc())
            .limit(limit)
        )
        with self._reading("list expenses for person") as conn:
            name = conn.execute(
                select(users.c.display_name).where(users.c.id == person_id)
            ).scalar_one_or_none()
            rows = conn.execute(stmt).all()

        return [
            PersonExpenseLine(
                expense=self._row_to_expense(row),
                person_share=row.person_share,
                person_name=name,
            )
            for row in rows
        ]

    # =========================================================================
    # Settlements
    # =========================================================================

    async def add_settlement(self, settlement: Settlement) -> bool:
        with self._transaction("add settlement") as conn:
            conn.execute(insert(settlements).values(**settlement.model_dump()))
        return True

    async def list_settlements(self, person_id: Optional[str] = None) -> list[Settlement]:
        stmt = select(settlements)
        if person_id is not None:
            stmt = stmt.where(
                or_(settlements.c.payer_id == person_id, settlements.c.payee_id == person_id)
            )
        stmt = stmt.order_by(settlements.c.date.desc())

        with self._reading("list settlements") as conn:
            return [self._row_to_settlement(row) for row in conn.execute(stmt)]

    async def delete_settlement(self, settlement_id: str) -> bool:
        with self._transaction("delete settlement") as conn:
            result = conn.execute(delete(settlements).where(settlements.c.id == settlement_id))
            found = result.rowcount > 0
        return found

    # =========================================================================
    # Grouped sums for balances
    # =========================================================================

    def _grouped_sums(self, operation: str, stmt) -> dict[str, float]:
        with self._reading(operation) as conn:
            return {key: float(total or 0.0) for key, total in conn.execute(stmt)}

    async def shares_owed_to(self, payer_id: str) -> dict[str, float]:
        ep = expense_participants
        stmt = (
            select(ep.c.user_id, func.sum(ep.c.share))
            .select_from(expenses.join(ep, ep.c.expense_id == expenses.c.id))
            .where(expenses.c.payer_id == payer_id, ep.c.user_id != payer_id)
            .group_by(ep.c.user_id)
        )
        return self._grouped_sums("sum shares owed to payer", stmt)

    async def shares_owed_by(self, participant_id: str) -> dict[str, float]:
        ep = expense_participants
        stmt = (
            select(expenses.c.payer_id, func.sum(ep.c.share))
            .select_from(expenses.join(ep, ep.c.expense_id == expenses.c.id))
            .where(ep.c.user_id == participant_id, expenses.c.payer_id != participant_id)
            .group_by(expenses.c.payer_id)
        )
        return self._grouped_sums("sum shares owed by participant", stmt)

    async def settlements_received_by(self, payee_id: str) -> dict[str, float]:
        stmt = (
            select(settlements.c.payer_id, func.sum(settlements.c.amount))
            .where(settlements.c.payee_id == payee_id)
            .group_by(settlements.c.payer_id)
        )
        return self._grouped_sums("sum settlements received", stmt)

    async def settlements_sent_by(self, payer_id: str) -> dict[str, float]:
        stmt = (
            select(settlements.c.payee_id, func.sum(settlements.c.amount))
            .where(settlements.c.payer_id == payer_id)
            .group_by(settlements.c.payee_id)
        )
        return self._grouped_sums("sum settlements sent", stmt)

    # =========================================================================
    # Budgets
    # =========================================================================

    async def add_budget(self, budget: Budget) -> bool:
        with self._transaction("add budget") as conn:
            conn.execute(insert(budgets).values(**budget.model_dump()))
        return True

    async def insert_budget_if_absent(self, budget: Budget) -> bool:
        stmt = (
            sqlite_insert(budgets)
            .values(**budget.model_dump())
            .on_conflict_do_nothing(index_elements=["user_id", "name", "month"])
        )
        with self._transaction("insert budget") as conn:
            result = conn.execute(stmt)
            inserted = result.rowcount == 1
        return inserted

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        with self._reading("get budget") as conn:
            row = conn.execute(select(budgets).where(budgets.c.id == budget_id)).first()
        return self._row_to_budget(row) if row else None

    async def update_budget(self, budget_id: str, fields: dict[str, Any]) -> Budget:
        unknown = set(fields) - BUDGET_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Budget fields cannot be updated: {sorted(unknown)}")

        with self._transaction("update budget") as conn:
            if fields:
                result = conn.execute(
                    update(budgets).where(budgets.c.id == budget_id).values(**fields)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Budget not found: {budget_id}")
            row = conn.execute(select(budgets).where(budgets.c.id == budget_id)).first()
            if row is None:
                raise NotFoundError(f"Budget not found: {budget_id}")
        return self._row_to_budget(row)

    async def delete_budget(self, budget_id: str) -> bool:
        with self._transaction("delete budget") as conn:
            conn.execute(
                update(personal_spend)
                .where(personal_spend.c.budget_id == budget_id)
                .values(budget_id=None)
            )
            result = conn.execute(delete(budgets).where(budgets.c.id == budget_id))
            found = result.rowcount > 0
        return found

    async def delete_budget_template(self, budget_id: str) -> bool:
        with self._transaction("delete recurring budget") as conn:
            result = conn.execute(
                delete(budgets).where(
                    budgets.c.id == budget_id,
                    budgets.c.month == TEMPLATE_MONTH,
                )
            )
            found = result.rowcount > 0
        return found

    async def list_budgets(self, user_id: str, month: int) -> list[Budget]:
        stmt = (
            select(budgets)
            .where(budgets.c.user_id == user_id, budgets.c.month == month)
            .order_by(_by_name(budgets.c.name))
        )
        with self._reading("list budgets") as conn:
            return [self._row_to_budget(row) for row in conn.execute(stmt)]

    # =========================================================================
    # Personal spend
    # =========================================================================

    async def add_personal_spend(self, spend: PersonalSpend) -> bool:
        with self._transaction("add personal spend") as conn:
            conn.execute(insert(personal_spend).values(**spend.model_dump()))
        return True

    async def get_personal_spend(self, spend_id: str) -> Optional[PersonalSpend]:
        with self._reading("get personal spend") as conn:
            row = conn.execute(
                select(personal_spend).where(personal_spend.c.id == spend_id)
            ).first()
        return self._row_to_spend(row) if row else None

    async def update_personal_spend(self, spend_id: str, fields: dict[str, Any]) -> PersonalSpend:
        unknown = set(fields) - SPEND_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Personal spend fields cannot be updated: {sorted(unknown)}")

        with self._transaction("update personal spend") as conn:
            if fields:
                result = conn.execute(
                    update(personal_spend).where(personal_spend.c.id == spend_id).values(**fields)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Personal spend not found: {spend_id}")
            row = conn.execute(
                select(personal_spend).where(personal_spend.c.id == spend_id)
            ).first()
            if row is None:
                raise NotFoundError(f"Personal spend not found: {spend_id}")
        return self._row_to_spend(row)

    async def delete_personal_spend(self, spend_id: str) -> bool:
        with self._transaction("delete personal spend") as conn:
            result = conn.execute(delete(personal_spend).where(personal_spend.c.id == spend_id))
            found = result.rowcount > 0
        return found

    async def list_personal_spend(
        self,
        user_id: str,
        date_from: datetime,
        date_to: datetime,
        budget_id: Optional[str] = None,
    ) -> list[PersonalSpend]:
        stmt = select(personal_spend).where(
            personal_spend.c.user_id == user_id,
            personal_spend.c.date >= date_from,
            personal_spend.c.date < date_to,
        )
        if budget_id is not None:
            stmt = stmt.where(personal_spend.c.budget_id == budget_id)
        stmt = stmt.order_by(personal_spend.c.date.desc())

        with self._reading("list personal spend") as conn:
            return [self._row_to_spend(row) for row in conn.execute(stmt)]

    async def list_recent_personal_spend(
        self,
        limit: int = 30,
    ) -> list[tuple[PersonalSpend, Optional[str]]]:
        stmt = (
            select(personal_spend, budgets.c.name.label("budget_name"))
            .select_from(
                personal_spend.outerjoin(budgets, budgets.c.id == personal_spend.c.budget_id)
            )
            .order_by(personal_spend.c.date.desc())
            .limit(limit)
        )
        with self._reading("list recent personal spend") as conn:
            return [(self._row_to_spend(row), row.budget_name) for row in conn.execute(stmt)]

    async def budget_usages(
        self,
        user_id: str,
        date_from: datetime,
        date_to: datetime,
    ) -> list[BudgetUsage]:
        stmt = (
            select(
                personal_spend.c.budget_id,
                func.coalesce(func.sum(personal_spend.c.amount), 0.0).label("total"),
            )
            .where(
                personal_spend.c.user_id == user_id,
                personal_spend.c.date >= date_from,
                personal_spend.c.date < date_to,
            )
            .group_by(personal_spend.c.budget_id)
        )
        with self._reading("sum budget usage") as conn:
            return [
                BudgetUsage(budget_id=row.budget_id, total=row.total)
                for row in conn.execute(stmt)
            ]
