"""
Subscription Planning Dashboard - Data Loader
Fetches from the record store with bounded waits and falls back to defaults

A fetch that fails or exceeds the timeout is never retried or cancelled:
the loader stops waiting and uses the default dataset for that piece.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import pandas as pd

from config import CONFIG, AppConfig, params_from_dict
from engine.cohort import Customer, customers_from_frame
from engine.daily import DailyActual, daily_actuals_from_frame
from engine.forecast import history_to_frame
from engine.numeric import shift_month
from engine.parameters import GrowthParameters
from store import defaults
from store.bigquery_connector import BigQueryConnector

logger = logging.getLogger(__name__)

T = TypeVar('T')

SOURCE_STORE = 'store'
SOURCE_DEFAULT = 'default'


@dataclass
class FetchResult(Generic[T]):
    """Fetched value plus where it came from"""
    value: T
    source: str
    error: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.source == SOURCE_DEFAULT


def fetch_with_fallback(fetch: Callable[[], T],
                        default: Callable[[], T],
                        timeout: float,
                        label: str = "fetch",
                        executor: ThreadPoolExecutor = None) -> FetchResult[T]:
    """
    Run fetch in a worker thread and wait at most `timeout` seconds

    Args:
        fetch: Store call returning the value
        default: Builds the fallback value
        timeout: Seconds to wait before giving up
        label: Name used in log messages
        executor: Shared pool; a private single-thread pool is used otherwise

    Returns:
        FetchResult with source 'store', or 'default' on error or timeout
    """
    own_executor = executor is None
    pool = executor or ThreadPoolExecutor(max_workers=1)
    try:
        future = pool.submit(fetch)
        try:
            value = future.result(timeout=timeout)
        except FutureTimeout:
            logger.warning("%s timed out after %.1fs; using default data", label, timeout)
            return FetchResult(default(), SOURCE_DEFAULT, f"timed out after {timeout}s")
        except Exception as e:
            logger.warning("%s failed (%s); using default data", label, e)
            return FetchResult(default(), SOURCE_DEFAULT, str(e))
        return FetchResult(value, SOURCE_STORE)
    finally:
        if own_executor:
            # Do not block on a fetch that is still running
            pool.shutdown(wait=False)


class DashboardLoader:
    """
    Loads everything the dashboard needs

    Without a connection (or with connect() failing) every load returns
    the default dataset immediately.
    """

    def __init__(self, connector: BigQueryConnector = None, config: AppConfig = None):
        self.config = config or CONFIG
        self.connector = connector or BigQueryConnector(self.config.store)
        self.timeout = self.config.store.fetch_timeout_seconds
        self._online = None

    @property
    def online(self) -> bool:
        if self._online is None:
            self._online = self.connector.is_connected or self.connector.connect()
        return self._online

    def _load(self, label: str, fetch: Callable[[], T], default: Callable[[], T],
              executor: ThreadPoolExecutor = None) -> FetchResult[T]:
        if not self.online:
            return FetchResult(default(), SOURCE_DEFAULT, "store not connected")
        return fetch_with_fallback(fetch, default, self.timeout, label=label, executor=executor)

    def load_parameters(self) -> FetchResult[GrowthParameters]:
        """Saved growth parameters, or config defaults"""
        result = self._load(
            "growth parameters",
            self.connector.get_growth_parameters,
            lambda: defaults.default_growth_parameters(self.config)
        )
        # An empty table is not an error, just nothing saved yet
        record = result.value or defaults.default_growth_parameters(self.config)
        try:
            params = params_from_dict(record, self.config)
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("Stored growth parameters unreadable, using defaults: %s", e)
            params = params_from_dict(defaults.default_growth_parameters(self.config), self.config)
            return FetchResult(params, SOURCE_DEFAULT, f"unreadable growth parameters: {e}")
        return FetchResult(params, result.source, result.error)

    def load_customers(self, end_month: str) -> FetchResult[List[Customer]]:
        result = self._load(
            "customers",
            self.connector.get_customers,
            lambda: defaults.default_customers(end_month)
        )
        return FetchResult(customers_from_frame(result.value), result.source, result.error)

    def load_daily_actuals(self, month: str) -> FetchResult[Dict[Any, DailyActual]]:
        result = self._load(
            f"daily actuals {month}",
            lambda: self.connector.get_daily_actuals(month),
            lambda: defaults.default_daily_actuals(month, self.config)
        )
        return FetchResult(daily_actuals_from_frame(result.value), result.source, result.error)

    def load_targets(self, periods: List[str]) -> FetchResult[pd.DataFrame]:
        return self._load(
            "targets",
            lambda: self.connector.get_targets(periods),
            lambda: defaults.default_targets(periods)
        )

    def load_history(self, end_month: str, months: int) -> FetchResult[pd.DataFrame]:
        """
        Monthly KPIs for `months` months ending at end_month

        Months are fetched concurrently; each month falls back on its own,
        and the result is ordered by month regardless of completion order.
        The source is 'default' if any month fell back.
        """
        month_list = [shift_month(end_month, -offset) for offset in reversed(range(months))]

        if not self.online:
            rows = [defaults.default_monthly_kpis(m) for m in month_list]
            return FetchResult(history_to_frame(rows), SOURCE_DEFAULT, "store not connected")

        with ThreadPoolExecutor(max_workers=self.config.store.max_workers) as executor:
            futures = {
                month: executor.submit(
                    fetch_with_fallback,
                    self._month_fetch(month),
                    lambda m=month: defaults.default_monthly_kpis(m),
                    self.timeout,
                    f"KPIs {month}"
                )
                for month in month_list
            }
            results = {month: future.result() for month, future in futures.items()}

        fell_back = [m for m, r in results.items() if r.is_default]
        if fell_back:
            logger.warning("History months served from defaults: %s", ", ".join(fell_back))

        frame = history_to_frame([results[m].value for m in month_list])
        source = SOURCE_DEFAULT if fell_back else SOURCE_STORE
        error = f"{len(fell_back)} month(s) fell back to defaults" if fell_back else None
        return FetchResult(frame, source, error)

    def _month_fetch(self, month: str) -> Callable[[], Dict]:
        def fetch():
            row = self.connector.get_monthly_kpis(month)
            if not row:
                raise LookupError(f"no KPIs stored for {month}")
            return row
        return fetch
