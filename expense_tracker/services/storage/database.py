"""
SQLAlchemy Storage Implementation

DESIGN DECISION: A relational database is the production backend:
1. PostgreSQL in deployment, SQLite for local runs and tests
2. The user upsert is a single INSERT ... ON CONFLICT DO UPDATE
3. Amounts are stored exactly (NUMERIC on PostgreSQL, decimal text on SQLite)

TRADEOFFS:
- Aggregations are reduced in Python over the date-filtered rows,
  which keeps both backends on the same Decimal arithmetic
- Only SQLite and PostgreSQL are supported (the upsert is dialect specific)

The implementation follows the abstract interface, so request handling
never sees a Session or a Row.
"""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
    update,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from expense_tracker.config import DatabaseSettings, get_settings
from expense_tracker.models.expense import (
    CENTS,
    Budget,
    BudgetInsert,
    BudgetType,
    BudgetUpdate,
    Category,
    CategoryInsert,
    Expense,
    ExpenseInsert,
    ExpenseMethod,
    UpsertUser,
    User,
)
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    StorageConnectionError,
    StorageError,
)


Base = declarative_base()


class Money(TypeDecorator):
    """
    Exact two-place decimal.

    SQLite has no exact numeric type, so amounts are kept as text there.
    """

    impl = Numeric(10, 2)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(32))
        return dialect.type_descriptor(Numeric(10, 2, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(str(value)).quantize(CENTS)
        return str(value) if dialect.name == "sqlite" else value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(CENTS)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(String(2048), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


class BudgetRow(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_budgets_user_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # 'monthly' | 'daily'
    amount = Column(Money, nullable=False)
    category_budgets = Column(Text, nullable=False, default="{}")  # JSON text
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)


class ExpenseRow(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    amount = Column(Money, nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    method = Column(String(20), nullable=False, default="manual")  # 'manual' | 'voice' | 'receipt'
    receipt_url = Column(Text, nullable=True)
    voice_note = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, default=datetime.now)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    icon = Column(Text, nullable=False)
    color = Column(Text, nullable=False)
    is_default = Column(Boolean, default=True)


def _is_in_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


class DatabaseClient:
    """
    Low-level database wrapper.

    Owns the engine (and its connection pool) and hands out sessions.
    One instance is shared by every request.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def dialect(self) -> str:
        return self.connect().dialect.name

    def connect(self) -> Engine:
        """
        Create the engine on first use.

        In-memory SQLite gets a single shared connection, otherwise every
        pooled connection would see its own empty database.
        """
        if self._engine is None:
            url = self._settings.url
            kwargs: dict[str, Any] = {"echo": self._settings.echo}
            if url.startswith("sqlite"):
                kwargs["connect_args"] = {"check_same_thread": False}
                if _is_in_memory_sqlite(url):
                    kwargs["poolclass"] = StaticPool
            else:
                kwargs["pool_pre_ping"] = self._settings.pool_pre_ping
            try:
                self._engine = create_engine(url, **kwargs)
            except Exception as e:
                raise StorageConnectionError(f"Failed to create database engine: {e}")
            self._session_factory = sessionmaker(
                bind=self._engine,
                expire_on_commit=False,
            )
        return self._engine

    def create_schema(self) -> None:
        """Create any missing tables."""
        try:
            Base.metadata.create_all(self.connect())
        except OperationalError as e:
            raise StorageConnectionError(f"Could not reach database: {e}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """A session wrapped in one transaction: commit on success, rollback on error."""
        self.connect()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    """Unwrap enums so the values bind as plain text."""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in data.items()
    }


class SQLAlchemyExpenseStorage(ExpenseStorageInterface):
    """
    SQLAlchemy implementation of expense tracker storage.

    Each public method runs in its own transaction.
    """

    def __init__(self, client: Optional[DatabaseClient] = None):
        self._client = client or DatabaseClient()

    @property
    def client(self) -> DatabaseClient:
        return self._client

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _row_to_user(self, row: UserRow) -> User:
        return User(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            profile_image_url=row.profile_image_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _row_to_budget(self, row: BudgetRow) -> Budget:
        return Budget(
            id=row.id,
            user_id=row.user_id,
            type=BudgetType(row.type),
            amount=row.amount,
            category_budgets=row.category_budgets or "{}",
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _row_to_expense(self, row: ExpenseRow) -> Expense:
        return Expense(
            id=row.id,
            user_id=row.user_id,
            amount=row.amount,
            category=row.category,
            description=row.description,
            method=ExpenseMethod(row.method),
            receipt_url=row.receipt_url,
            voice_note=row.voice_note,
            date=row.date,
            created_at=row.created_at,
        )

    def _row_to_category(self, row: CategoryRow) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            icon=row.icon,
            color=row.color,
            is_default=bool(row.is_default),
        )

    def _upsert_statement(self, values: dict[str, Any], updates: dict[str, Any]):
        """INSERT ... ON CONFLICT (id) DO UPDATE for the active dialect."""
        dialect = self._client.dialect
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise StorageError(f"Upsert not supported on {dialect}")
        stmt = insert(UserRow.__table__).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[UserRow.__table__.c.id],
            set_=updates,
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            with self._client.session() as session:
                row = session.get(UserRow, user_id)
                return self._row_to_user(row) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get user: {e}")

    def upsert_user(self, user: UpsertUser) -> User:
        now = datetime.now()
        provided = user.model_dump(exclude_unset=True)
        values = {**provided, "created_at": now, "updated_at": now}
        updates = {k: v for k, v in provided.items() if k != "id"}
        updates["updated_at"] = now
        try:
            with self._client.session() as session:
                session.execute(self._upsert_statement(values, updates))
                row = session.execute(
                    select(UserRow).where(UserRow.id == user.id)
                ).scalar_one()
                return self._row_to_user(row)
        except IntegrityError as e:
            raise DuplicateError(f"User email already in use: {e.orig}")
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to upsert user: {e}")

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def get_budget(self, user_id: str) -> Optional[Budget]:
        try:
            with self._client.session() as session:
                row = session.execute(
                    select(BudgetRow)
                    .where(BudgetRow.user_id == user_id)
                    .order_by(BudgetRow.id)
                    .limit(1)
                ).scalar_one_or_none()
                return self._row_to_budget(row) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get budget: {e}")

    def create_budget(self, budget: BudgetInsert) -> Budget:
        now = datetime.now()
        row = BudgetRow(
            **_column_values(budget.model_dump()),
            created_at=now,
            updated_at=now,
        )
        try:
            with self._client.session() as session:
                session.add(row)
                session.flush()
                return self._row_to_budget(row)
        except IntegrityError as e:
            raise DuplicateError(
                f"User {budget.user_id} already has a {budget.type.value} budget"
            ) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create budget: {e}")

    def update_budget(self, user_id: str, updates: BudgetUpdate) -> Optional[Budget]:
        values = _column_values(updates.changes())
        values["updated_at"] = datetime.now()
        try:
            with self._client.session() as session:
                result = session.execute(
                    update(BudgetRow)
                    .where(BudgetRow.user_id == user_id)
                    .values(**values)
                )
                if result.rowcount == 0:
                    return None
                row = session.execute(
                    select(BudgetRow)
                    .where(BudgetRow.user_id == user_id)
                    .order_by(BudgetRow.id)
                    .limit(1)
                ).scalar_one()
                return self._row_to_budget(row)
        except IntegrityError as e:
            raise DuplicateError(
                f"User {user_id} already has a budget of that type"
            ) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update budget: {e}")

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def _list_expenses(self, *criteria, limit: Optional[int] = None) -> list[Expense]:
        stmt = (
            select(ExpenseRow)
            .where(*criteria)
            .order_by(ExpenseRow.date, ExpenseRow.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        with self._client.session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._row_to_expense(row) for row in rows]

    def get_expenses(self, user_id: str, limit: Optional[int] = None) -> list[Expense]:
        try:
            return self._list_expenses(ExpenseRow.user_id == user_id, limit=limit)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list expenses: {e}")

    def get_expenses_by_category(self, user_id: str, category: str) -> list[Expense]:
        try:
            return self._list_expenses(
                ExpenseRow.user_id == user_id,
                ExpenseRow.category == category,
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list expenses by category: {e}")

    def get_expenses_by_date_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        try:
            return self._list_expenses(
                ExpenseRow.user_id == user_id,
                ExpenseRow.date >= start,
                ExpenseRow.date <= end,
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list expenses by date range: {e}")

    def create_expense(self, expense: ExpenseInsert) -> Expense:
        row = ExpenseRow(
            **_column_values(expense.model_dump()),
            created_at=datetime.now(),
        )
        try:
            with self._client.session() as session:
                session.add(row)
                session.flush()
                return self._row_to_expense(row)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create expense: {e}")

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def get_categories(self) -> list[Category]:
        try:
            with self._client.session() as session:
                rows = session.execute(
                    select(CategoryRow).order_by(CategoryRow.id)
                ).scalars().all()
                return [self._row_to_category(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list categories: {e}")

    def create_category(self, category: CategoryInsert) -> Category:
        row = CategoryRow(**category.model_dump())
        try:
            with self._client.session() as session:
                session.add(row)
                session.flush()
                return self._row_to_category(row)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create category: {e}")
