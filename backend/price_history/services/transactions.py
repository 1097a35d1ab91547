# backend/price_history/services/transactions.py
"""
Transaction input.

Transactions are owned by another part of the application; this module only
reads them. The list comes from transactions.json in the storage root, or is
injected directly (tests, callers that already hold the list).

Dates stay raw until a symbol's transactions are ordered, so a malformed date
raises ParseError for that symbol only.
"""

import json
import logging
from collections import defaultdict
from datetime import date
from typing import Any, Iterable

from pydantic import ValidationError

from price_history.schemas.transactions import Transaction
from price_history.services.exceptions import ParseError, TransactionsNotFoundError
from price_history.services.storage.files import FileStorage

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTIONS_FILE = "transactions.json"


class TransactionSource:
    """
    Loads the portfolio's transaction list.

    Args:
        storage: File storage rooted at the configured storage location
        file_name: Transactions file, relative to the storage root
        transactions: Pre-parsed transactions; when given, the file is not read
    """

    def __init__(
            self,
            storage: FileStorage,
            file_name: str = DEFAULT_TRANSACTIONS_FILE,
            transactions: Iterable[Transaction | dict[str, Any]] | None = None,
    ) -> None:
        self.storage = storage
        self.file_name = file_name
        self._injected = None if transactions is None else _validate_all(transactions)

    def load(self) -> list[Transaction]:
        """
        Load all transactions.

        Entries that fail validation (e.g., no symbol) are skipped.

        Raises:
            TransactionsNotFoundError: The transactions file does not exist
            ParseError: The file is not a JSON list of transactions
        """
        if self._injected is not None:
            return list(self._injected)

        content = self.storage.read_text(self.file_name)
        if content is None:
            raise TransactionsNotFoundError(f"Transactions file '{self.file_name}' not found")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Transactions file is not valid JSON: {e}",
                source=self.file_name,
            ) from e

        if isinstance(payload, dict):
            payload = payload.get("transactions")
        if not isinstance(payload, list):
            raise ParseError("Transactions file must contain a list", source=self.file_name)

        transactions = _validate_all(payload)
        logger.info(f"Loaded {len(transactions)} transactions from {self.file_name}")
        return transactions


def _validate_all(items: Iterable[Transaction | dict[str, Any]]) -> list[Transaction]:
    transactions: list[Transaction] = []
    for index, item in enumerate(items):
        if isinstance(item, Transaction):
            transactions.append(item)
            continue
        try:
            transactions.append(Transaction.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping transaction #{index}: {e.error_count()} validation errors")
    return transactions


# =============================================================================
# GROUPING
# =============================================================================

def group_by_symbol(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Transactions per symbol, in input order. Blank symbols are dropped."""
    grouped: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        if txn.symbol:
            grouped[txn.symbol].append(txn)
    return dict(grouped)


def sort_by_date(transactions: Iterable[Transaction]) -> list[tuple[date, Transaction]]:
    """
    Pair each transaction with its parsed date, oldest first.

    Raises:
        ParseError: If any date is malformed
    """
    dated = [(txn.parsed_date(), txn) for txn in transactions]
    dated.sort(key=lambda item: item[0])
    return dated


def earliest_transaction_date(transactions: Iterable[Transaction]) -> date | None:
    """
    Oldest trade date, or None for an empty list.

    Raises:
        ParseError: If any date is malformed
    """
    return min((txn.parsed_date() for txn in transactions), default=None)
