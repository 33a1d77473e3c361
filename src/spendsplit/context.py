"""Application context: persisted state plus the operations that mutate it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterable, Optional, Sequence

from sqlmodel import Session

from .config import BaseConfig
from .constants.currencies import DEFAULT_CURRENCY
from .domain.repositories import CategoryRepository, ExpenseRepository, SettingsRepository
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelCategoryRepository,
    SQLModelExpenseRepository,
    SQLModelSettingsRepository,
)
from .logging_config import get_logger
from .models.category import CategoryDefinition
from .models.currency import Currency
from .models.expense import Expense
from .models.transaction import Transaction
from .services import assistant, backup as backup_service, reports, transactions
from .services.aggregation import DashboardSummary, dashboard_summary
from .services.categories import CategoryRegistry, default_categories, merge_legacy_categories
from .services.ledger_service import (
    ExpenseLedger,
    LedgerFilters,
    Pagination,
    group_by_date,
    paginate_transactions,
)
from .services.transactions import DateLike, SplitInput, TransactionIdFactory

CURRENCY_SETTING = "currency"
LEGACY_CATEGORIES_SETTING = "customCategories"

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Centralized application state and the services acting on it.

    Every mutation works on copies of the ledger and registry, writes the
    resulting records in a single session, and swaps the copies in only after
    the commit succeeded. A failed operation therefore leaves both the
    in-memory state and the database untouched.
    """

    # Configuration
    config: BaseConfig

    # Session factory
    session_factory: Callable[[], ContextManager[Session]]

    # Repositories
    expense_repo: ExpenseRepository
    category_repo: CategoryRepository
    settings_repo: SettingsRepository

    # State
    ledger: ExpenseLedger
    registry: CategoryRegistry
    currency: Currency
    id_factory: TransactionIdFactory

    dev_mode: bool = False

    # Injected client for the text services (tests pass a stub)
    ai_client: Optional[Any] = None

    # -- persistence ---------------------------------------------------

    def _persist(
        self,
        *,
        ledger: Optional[ExpenseLedger] = None,
        registry: Optional[CategoryRegistry] = None,
        currency: Optional[Currency] = None,
    ) -> None:
        with self.session_factory() as session:
            if ledger is not None:
                self.expense_repo.replace_all(ledger.snapshot(), session=session)
            if registry is not None:
                self.category_repo.replace_all(registry.entries(), session=session)
            if currency is not None:
                self.settings_repo.set_json(CURRENCY_SETTING, currency.to_dict(), session=session)

        if ledger is not None:
            self.ledger = ledger
        if registry is not None:
            self.registry = registry
        if currency is not None:
            self.currency = currency

    # -- transactions --------------------------------------------------

    def add_transaction(
        self,
        *,
        total: float,
        vendor: str,
        date: DateLike,
        splits: Sequence[SplitInput],
        notes: Optional[str] = None,
    ) -> Transaction:
        """Validate and record a new transaction."""

        ledger = self.ledger.copy()
        txn = transactions.create_transaction(
            ledger,
            total=total,
            vendor=vendor,
            date=date,
            splits=transactions.canonicalize_splits(splits, self.registry),
            notes=notes,
            id_factory=self.id_factory,
        )
        self._persist(ledger=ledger)
        logger.info(
            "Transaction added",
            extra={"transaction_id": txn.transaction_id, "splits": len(txn.splits), "total": txn.total},
        )
        return txn

    def update_transaction(
        self,
        transaction_id: str,
        *,
        total: float,
        vendor: str,
        date: DateLike,
        splits: Sequence[SplitInput],
        notes: Optional[str] = None,
    ) -> Transaction:
        """Replace every split of ``transaction_id`` with a freshly validated set."""

        ledger = self.ledger.copy()
        txn = transactions.update_transaction(
            ledger,
            transaction_id,
            total=total,
            vendor=vendor,
            date=date,
            splits=transactions.canonicalize_splits(splits, self.registry),
            notes=notes,
        )
        self._persist(ledger=ledger)
        logger.info(
            "Transaction updated",
            extra={"transaction_id": transaction_id, "splits": len(txn.splits), "total": txn.total},
        )
        return txn

    def delete_transaction(self, transaction_id: str) -> int:
        """Remove every split of ``transaction_id``; unknown ids are a no-op."""

        ledger = self.ledger.copy()
        removed = ledger.delete_transaction(transaction_id)
        if removed:
            self._persist(ledger=ledger)
            logger.info("Transaction deleted", extra={"transaction_id": transaction_id, "splits": removed})
        return removed

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        splits = self.ledger.get_transaction(transaction_id)
        if not splits:
            return None
        return Transaction(transaction_id=transaction_id, splits=splits)

    def list_transactions(
        self,
        month: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        pagination: Optional[Pagination] = None,
    ) -> tuple[dict[str, list[Transaction]], int]:
        """One page of matching transactions grouped by date, plus the total match count.

        ``search`` matches vendor or notes case-insensitively. Without
        ``pagination`` every match is returned.
        """

        filters = LedgerFilters(month=month, text=search)
        if category:
            filters.category = category
        txs = self.ledger.transactions(filters)
        if pagination is None:
            return group_by_date(txs), len(txs)
        page, total = paginate_transactions(txs, pagination)
        return group_by_date(page), total

    def summary(self, now: Optional[datetime] = None) -> DashboardSummary:
        return dashboard_summary(self.ledger, now)

    # -- categories ----------------------------------------------------

    def add_category(self, name: str, color: Optional[str] = None) -> CategoryDefinition:
        registry = self.registry.copy()
        entry = registry.add(name, color)
        self._persist(registry=registry)
        logger.info("Category added", extra={"category": entry.name})
        return entry

    def rename_category(self, old_name: str, new_name: str, color: Optional[str] = None) -> int:
        """Rename a category and move its splits along; returns how many splits moved."""

        registry = self.registry.copy()
        cascade = registry.rename(old_name, new_name, color)
        ledger = self.ledger.copy()
        moved = ledger.reassign_category(cascade.old_name, cascade.new_name)
        self._persist(ledger=ledger, registry=registry)
        logger.info(
            "Category renamed",
            extra={"old_category": cascade.old_name, "new_category": cascade.new_name, "splits": moved},
        )
        return moved

    def delete_category(self, name: str) -> int:
        """Delete a custom category; its splits are reassigned to ``Other``."""

        registry = self.registry.copy()
        cascade = registry.delete(name)
        ledger = self.ledger.copy()
        moved = ledger.reassign_category(cascade.old_name, cascade.new_name)
        self._persist(ledger=ledger, registry=registry)
        logger.info("Category deleted", extra={"category": cascade.old_name, "splits": moved})
        return moved

    # -- currency ------------------------------------------------------

    def set_currency(self, currency: Currency) -> Currency:
        self._persist(currency=currency)
        logger.info("Currency changed", extra={"currency": currency.code})
        return currency

    # -- backup --------------------------------------------------------

    def export_document(self) -> dict[str, Any]:
        return backup_service.serialize(self.ledger, self.registry, self.currency)

    def backup(self, path: Optional[Path] = None) -> Path:
        """Write the full state to ``path`` (directory or file), default the backup dir."""

        return backup_service.write_backup(self.export_document(), Path(path or self.config.BACKUP_DIR))

    def restore(self, document: Any) -> backup_service.RestoredState:
        """Replace ledger, registry and currency with a backup document's contents.

        Validation happens before anything is touched; on :class:`FormatError`
        the current state is kept as is.
        """

        state = backup_service.deserialize(document)
        ledger = ExpenseLedger(state.expenses)
        registry = CategoryRegistry(state.categories) if state.categories is not None else self.registry.copy()
        registry.ensure_sentinel()
        self._persist(ledger=ledger, registry=registry, currency=state.currency)
        self.id_factory.observe(ledger.max_numeric_transaction_id())
        logger.info(
            "Backup restored",
            extra={
                "version": state.version,
                "expenses": len(state.expenses),
                "upgraded": state.upgraded,
                "currency": state.currency.code,
            },
        )
        return state

    def restore_file(self, path: Path) -> backup_service.RestoredState:
        return self.restore(backup_service.read_backup(Path(path)))

    # -- text services -------------------------------------------------

    def parse_expense_text(self, text: str) -> assistant.AssistantResult[assistant.ParsedExpense]:
        """Ask the text service for an expense candidate; nothing is committed."""

        return assistant.parse_expense_text(
            text, self.registry.names(), config=self.config, client=self.ai_client
        )

    def report_months(self, today: Optional[date] = None) -> list[reports.ReportMonth]:
        return reports.report_months(self.ledger, today)

    def generate_report(self, month: str) -> reports.MonthlyReport:
        """Build the monthly report for ``month`` (``YYYY-MM``)."""

        return reports.build_monthly_report(
            reports.expenses_for_month(self.ledger, month),
            month,
            self.currency,
            self.registry.names(),
            config=self.config,
            client=self.ai_client,
        )

    def write_report(self, report: reports.MonthlyReport, path: Optional[Path] = None) -> Path:
        return reports.render_report_text(report, Path(path or self.config.REPORT_DIR))


def _migrate_transaction_ids(expenses: Iterable[Expense]) -> tuple[list[Expense], bool]:
    migrated = False
    result: list[Expense] = []
    for expense in expenses:
        if not expense.transaction_id:
            expense = expense.copy_with(transaction_id=expense.id)
            migrated = True
        result.append(expense)
    return result, migrated


def _load_currency(settings_repo: SettingsRepository, session: Session) -> Optional[Currency]:
    try:
        raw = settings_repo.get_json(CURRENCY_SETTING, session=session)
    except ValueError:
        logger.warning("Stored currency is not valid JSON; using the default", exc_info=True)
        return None
    if isinstance(raw, dict) and raw.get("code"):
        return Currency.from_dict(raw)
    return None


def _load_state(
    session_factory: Callable[[], ContextManager[Session]],
    expense_repo: ExpenseRepository,
    category_repo: CategoryRepository,
    settings_repo: SettingsRepository,
) -> tuple[ExpenseLedger, CategoryRegistry, Currency]:
    """Read persisted state, repairing first-run and legacy data in one transaction."""

    with session_factory() as session:
        categories = category_repo.list_all(session=session)
        categories_changed = False
        if not categories:
            categories = default_categories()
            categories_changed = True

        try:
            legacy = settings_repo.get_json(LEGACY_CATEGORIES_SETTING, session=session)
        except ValueError:
            logger.warning("Legacy category setting is not valid JSON; discarding it", exc_info=True)
            legacy = []
        if legacy is not None:
            if isinstance(legacy, list):
                categories = merge_legacy_categories(categories, legacy)
            settings_repo.delete(LEGACY_CATEGORIES_SETTING, session=session)
            categories_changed = True
            logger.info("Merged legacy custom categories", extra={"categories": len(categories)})

        registry = CategoryRegistry(categories)
        if registry.ensure_sentinel():
            categories_changed = True
        if categories_changed:
            category_repo.replace_all(registry.entries(), session=session)

        expenses, migrated = _migrate_transaction_ids(expense_repo.list_all(session=session))
        ledger = ExpenseLedger(expenses)
        if migrated:
            expense_repo.replace_all(ledger.snapshot(), session=session)
            logger.info("Assigned transaction ids to legacy splits", extra={"expenses": len(ledger)})

        currency = _load_currency(settings_repo, session)
        if currency is None:
            currency = DEFAULT_CURRENCY
            settings_repo.set_json(CURRENCY_SETTING, currency.to_dict(), session=session)

    return ledger, registry, currency


def create_app_context(config: Optional[BaseConfig] = None, *, ai_client: Any = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    # Create database engine
    engine = create_db_engine(config)

    # Initialize schema
    init_database(engine)

    # Create session factory
    session_factory = create_session_factory(engine)

    # Initialize repositories
    expense_repo = SQLModelExpenseRepository(session_factory)
    category_repo = SQLModelCategoryRepository(session_factory)
    settings_repo = SQLModelSettingsRepository(session_factory)

    ledger, registry, currency = _load_state(session_factory, expense_repo, category_repo, settings_repo)

    logger.info(
        "Application context ready",
        extra={"expenses": len(ledger), "categories": len(registry), "currency": currency.code},
    )

    return AppContext(
        config=config,
        dev_mode=config.DEV_MODE,
        session_factory=session_factory,
        expense_repo=expense_repo,
        category_repo=category_repo,
        settings_repo=settings_repo,
        ledger=ledger,
        registry=registry,
        currency=currency,
        id_factory=TransactionIdFactory(floor=ledger.max_numeric_transaction_id()),
        ai_client=ai_client,
    )


__all__ = ["AppContext", "create_app_context"]
