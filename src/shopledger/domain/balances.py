"""Balance arithmetic shared by the ledger, opening balances and reports.

An account's value at the end of date D is its latest explicit opening value
on or before D plus every inflow and outflow dated from that opening's date to
D. Opening balance corrections are not flows; they are folded into the
explicit opening value of their date.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, Optional

from shopledger.database.base import Database
from shopledger.domain.entities import ZERO, AccountRef, RecordKind, TransactionSource

logger = logging.getLogger(__name__)


class BalanceCalculator:
    """Derives opening and closing values of one account from stored history.

    Inside ``memoized()`` closing values are remembered per account and date,
    so a walk over consecutive dates reads each day's flows once instead of
    the whole history per day. Open it inside a read snapshot; the memo
    holds only while nothing is written.
    """

    def __init__(self, db: Database):
        self.db = db
        self._local = threading.local()

    @contextmanager
    def memoized(self) -> Iterator["BalanceCalculator"]:
        """Remember closing values until the outermost block exits."""
        if getattr(self._local, "closings", None) is not None:
            yield self
            return
        self._local.closings = {}
        try:
            yield self
        finally:
            self._local.closings = None

    def net_flows(self, account: AccountRef, start_date: Optional[date], end_date: date) -> Decimal:
        """Sum of signed flows of an account between two dates inclusive.

        A ``start_date`` of None means from the first recorded activity.
        """
        additions = self.db.list_transactions(
            account_key=account.key,
            start_date=start_date,
            end_date=end_date,
            sources=[TransactionSource.OPENING_BALANCE_ADDITION],
        )
        total = sum((txn.amount for txn in additions), ZERO)
        for kind in RecordKind:
            lines = self.db.list_payment_lines(
                kind=kind, account_key=account.key, start_date=start_date, end_date=end_date
            )
            total += kind.sign * sum((line.amount for line in lines), ZERO)
        return total

    def closing_value(self, account: AccountRef, on_date: date) -> Decimal:
        """Balance of an account at the end of a date."""
        closings = getattr(self._local, "closings", None)
        if closings is not None and (account.key, on_date) in closings:
            return closings[(account.key, on_date)]

        explicit = self.db.get_latest_explicit_opening(account.key, on_date)
        if explicit is None:
            start_date, base = None, ZERO
        else:
            start_date, base = explicit

        previous = (account.key, on_date - timedelta(days=1))
        if closings is not None and previous in closings and (start_date is None or start_date < on_date):
            # The day before shares this explicit base
            value = closings[previous] + self.net_flows(account, on_date, on_date)
        else:
            value = base + self.net_flows(account, start_date, on_date)
        logger.debug("Closing %s on %s: %s (base %s from %s)", account.key, on_date, value, base, start_date)

        if closings is not None:
            closings[(account.key, on_date)] = value
        return value

    def opening_value(self, account: AccountRef, on_date: date) -> Decimal:
        """Balance of an account at the start of a date."""
        explicit = self.db.get_latest_explicit_opening(account.key, on_date)
        if explicit is not None and explicit[0] == on_date:
            return explicit[1]
        return self.closing_value(account, on_date - timedelta(days=1))
