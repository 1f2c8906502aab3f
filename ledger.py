"""Ledger snapshots read from the database.

The aggregation code works on the frozen ``*Node``/``*Record`` values defined
here, never on ORM instances, so a snapshot stays valid after its session is
closed and can be recomputed any number of times.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from models import Category, Expense, ExpenseType, Income
from periods import parse_calendar_date
from schemas import CategoryIn, ExpenseIn, ExpenseTypeIn, IncomeIn

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats such as 0.1 keep their printed value
    return Decimal(str(value))


class LedgerFetchError(RuntimeError):
    """A ledger query failed; the current recompute cycle must be abandoned."""


@dataclass(frozen=True)
class ExpenseRecord:
    amount: Decimal
    date: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "date", parse_calendar_date(self.date))


@dataclass(frozen=True)
class IncomeRecord:
    amount: Decimal
    date: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "date", parse_calendar_date(self.date))


@dataclass(frozen=True)
class ExpenseTypeNode:
    id: int
    name: str
    expenses: tuple[ExpenseRecord, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "expenses", tuple(self.expenses))


@dataclass(frozen=True)
class CategoryNode:
    id: int
    name: str
    color: str
    expense_types: tuple[ExpenseTypeNode, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "expense_types", tuple(self.expense_types))


@dataclass(frozen=True)
class LedgerSnapshot:
    """Everything one recompute needs: the category tree and all income."""

    categories: tuple[CategoryNode, ...]
    income: tuple[IncomeRecord, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "income", tuple(self.income))

    def expense_dates(self) -> list[date]:
        return [
            expense.date
            for category in self.categories
            for expense_type in category.expense_types
            for expense in expense_type.expenses
        ]

    def income_dates(self) -> list[date]:
        return [record.date for record in self.income]


class LedgerStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def fetch_categories_with_expenses(self, owner_id: int) -> list[CategoryNode]:
        stmt = (
            select(Category)
            .where(Category.user_id == owner_id)
            .options(
                selectinload(Category.expense_types).selectinload(
                    ExpenseType.expenses
                )
            )
            .order_by(Category.order, Category.id)
        )
        try:
            categories = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise LedgerFetchError(
                f"Could not load categories for owner {owner_id}"
            ) from exc
        return [_category_node(category, owner_id) for category in categories]

    def fetch_income(
        self, owner_id: int, date_range: Optional[tuple[date, date]] = None
    ) -> list[IncomeRecord]:
        stmt = select(Income.amount, Income.date).where(Income.user_id == owner_id)
        if date_range is not None:
            start, end = date_range
            stmt = stmt.where(Income.date.between(start, end))
        stmt = stmt.order_by(Income.date, Income.id)
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise LedgerFetchError(f"Could not load income for owner {owner_id}") from exc
        return [IncomeRecord(amount=row.amount, date=row.date) for row in rows]

    def snapshot(self, owner_id: int) -> LedgerSnapshot:
        categories = self.fetch_categories_with_expenses(owner_id)
        income = self.fetch_income(owner_id)
        logger.debug(
            "ledger_snapshot: owner=%s categories=%s income_rows=%s",
            owner_id,
            len(categories),
            len(income),
        )
        return LedgerSnapshot(categories=tuple(categories), income=tuple(income))


def _category_node(category: Category, owner_id: int) -> CategoryNode:
    return CategoryNode(
        id=category.id,
        name=category.name,
        color=category.color,
        expense_types=tuple(
            ExpenseTypeNode(
                id=expense_type.id,
                name=expense_type.name,
                expenses=tuple(
                    ExpenseRecord(amount=expense.amount, date=expense.date)
                    for expense in sorted(
                        expense_type.expenses, key=lambda e: (e.date, e.id)
                    )
                    if expense.user_id == owner_id
                ),
            )
            for expense_type in category.expense_types
        ),
    )


class LedgerService:
    def __init__(self, session: Session, user_id: int = 1) -> None:
        self.session = session
        self.user_id = user_id

    def create_category(self, data: CategoryIn) -> Category:
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.name == data.name.strip(),
            )
        )
        if existing:
            raise ValueError("Category with this name already exists")
        category = Category(
            user_id=self.user_id,
            name=data.name.strip(),
            color=data.color.lower(),
            order=data.order,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def create_expense_type(self, data: ExpenseTypeIn) -> ExpenseType:
        category = self.session.get(Category, data.category_id)
        if not category or category.user_id != self.user_id:
            raise ValueError("Category not found")
        expense_type = ExpenseType(category_id=category.id, name=data.name.strip())
        self.session.add(expense_type)
        self.session.commit()
        self.session.refresh(expense_type)
        return expense_type

    def add_expense(self, data: ExpenseIn) -> Expense:
        expense_type = self.session.get(ExpenseType, data.expense_type_id)
        if not expense_type or expense_type.category.user_id != self.user_id:
            raise ValueError("Expense type not found")
        expense = Expense(
            user_id=self.user_id,
            expense_type_id=expense_type.id,
            amount=data.amount,
            date=data.date,
            description=data.description,
        )
        self.session.add(expense)
        self.session.commit()
        self.session.refresh(expense)
        return expense

    def add_income(self, data: IncomeIn) -> Income:
        income = Income(
            user_id=self.user_id,
            amount=data.amount,
            date=data.date,
            source=data.source,
        )
        self.session.add(income)
        self.session.commit()
        self.session.refresh(income)
        return income

