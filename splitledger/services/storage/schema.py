"""
Relational schema of the ledger.

Foreign keys carry the cascade rules the ledger depends on:
- participants and settlements disappear with their person
- participants disappear with their expense
- an expense outlives its payer/creator (the reference is nulled)
- budgets and personal spend belong to a user

personal_spend.budget_id is deliberately NOT a foreign key: deleting a
budget detaches spends explicitly inside one transaction.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)


metadata = MetaData()


users = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("display_name", String, nullable=False),
    Column("email", String, nullable=True),
)

expenses = Table(
    "expenses",
    metadata,
    Column("id", String, primary_key=True),
    Column("description", Text, nullable=True),
    Column("category", String, nullable=True),
    Column("amount", Float, nullable=False),
    Column("currency", String(3), nullable=False, server_default="CAD"),
    Column("date", DateTime, nullable=False),
    Column("created_by", String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("payer_id", String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Index("idx_expenses_date", "date"),
)

expense_participants = Table(
    "expense_participants",
    metadata,
    Column(
        "expense_id",
        String,
        ForeignKey("expenses.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("share", Float, nullable=False),
    Index("idx_expense_participants_user", "user_id"),
)

settlements = Table(
    "settlements",
    metadata,
    Column("id", String, primary_key=True),
    Column("payer_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("payee_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("amount", Float, nullable=False),
    Column("date", DateTime, nullable=False),
    Column("note", Text, nullable=True),
    Index("idx_settlements_payer", "payer_id"),
    Index("idx_settlements_payee", "payee_id"),
)

budgets = Table(
    "budgets",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("name", String, nullable=False),
    # YYYYMM, or 0 for a recurring template
    Column("month", Integer, nullable=False),
    Column("amount", Float, nullable=False),
    UniqueConstraint("user_id", "name", "month", name="uq_budgets_user_name_month"),
)

personal_spend = Table(
    "personal_spend",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("amount", Float, nullable=False),
    Column("budget_id", String, nullable=True),
    Column("category", String, nullable=True),
    Column("date", DateTime, nullable=False),
    Column("note", Text, nullable=True),
    Index("idx_personal_spend_date", "date"),
)
