"""Range reports built from consecutive daily reports."""

import logging
from datetime import date

from shopledger.domain.entities import ZERO, DateRangeReport, RangeSummary
from shopledger.domain.errors import InvalidDateRange
from shopledger.domain.reconciliation import DailyReconciliationEngine
from shopledger.utils.date_parser import iter_dates

logger = logging.getLogger(__name__)


class RangeAggregator:
    """Service for reporting over a span of dates."""

    def __init__(self, engine: DailyReconciliationEngine):
        """Initialize range aggregator.

        Args:
            engine: Engine computing each daily report
        """
        self.engine = engine

    def compute_range_report(self, start_date: date, end_date: date) -> DateRangeReport:
        """Compute daily reports for every date of a range and summarize them.

        Flow totals are summed across days. Balances are never summed: the
        range opens with the first day's opening balance and closes with the
        last day's closing balance.

        Args:
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            DateRangeReport with one daily report per date

        Raises:
            InvalidDateRange: If start_date is after end_date
        """
        if start_date > end_date:
            raise InvalidDateRange(start_date, end_date)

        calculator = self.engine.opening_manager.calculator
        with self.engine.db.read_snapshot(), calculator.memoized():
            daily_reports = tuple(
                self.engine.compute_daily_report(day) for day in iter_dates(start_date, end_date)
            )

        summary = RangeSummary(
            opening_balance=daily_reports[0].opening_balance,
            closing_balance=daily_reports[-1].closing_balance,
            sales_total=sum((r.sales.total for r in daily_reports), ZERO),
            purchases_total=sum((r.purchases.total for r in daily_reports), ZERO),
            expenses_total=sum((r.expenses.total for r in daily_reports), ZERO),
            additions_total=sum((r.additions_total for r in daily_reports), ZERO),
            sales_count=sum(r.sales.count for r in daily_reports),
            purchases_count=sum(r.purchases.count for r in daily_reports),
            expenses_count=sum(r.expenses.count for r in daily_reports),
        )
        logger.debug("Range report %s..%s over %d days", start_date, end_date, len(daily_reports))
        return DateRangeReport(
            start_date=start_date,
            end_date=end_date,
            daily_reports=daily_reports,
            summary=summary,
        )
