"""
Subscription Planning Dashboard - BigQuery Connector
Reads growth parameters, customers, daily actuals and targets from BigQuery

Authentication is tried in order:
1. Service Account (GOOGLE_APPLICATION_CREDENTIALS JSON file)
2. gcloud CLI / Application Default Credentials
   (gcloud auth application-default login)

Set BQ_PROJECT_ID (and optionally BQ_DATASET_ID) in .env or the environment.
"""

import json
import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from config import CONFIG, StoreConfig
from engine.numeric import month_period

try:
    from google.cloud import bigquery
    from google.oauth2 import service_account
    import google.auth
    BIGQUERY_AVAILABLE = True
except ImportError:
    BIGQUERY_AVAILABLE = False

logger = logging.getLogger(__name__)


class BigQueryConnector:
    """
    BigQuery connector for the subscription dataset

    The dashboard falls back to the default dataset when this connector
    cannot connect (library missing, no project configured, auth failure).
    """

    def __init__(self, config: StoreConfig = None, project_id: str = None, credentials_path: str = None):
        self.config = config or CONFIG.store
        self.project_id = project_id or self.config.project_id
        self.credentials_path = credentials_path or self.config.credentials_path
        self.dataset_id = self.config.dataset_id
        self.client = None
        self._connected = False
        self.auth_method = None

    def connect(self) -> bool:
        """
        Establish connection to BigQuery

        Returns:
            True if connected successfully
        """
        if not BIGQUERY_AVAILABLE:
            logger.info("google-cloud-bigquery not installed; using default data")
            return False

        if not self.project_id:
            logger.info("BQ_PROJECT_ID not configured; using default data")
            return False

        # Method 1: Service Account
        if self.credentials_path and os.path.exists(self.credentials_path):
            try:
                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path
                )
                self.client = bigquery.Client(project=self.project_id, credentials=credentials)
                self._connected = True
                self.auth_method = "Service Account"
                logger.info("Connected to BigQuery project %s using Service Account", self.project_id)
                return True
            except Exception as e:
                logger.warning("Service Account auth failed: %s", e)

        # Method 2: gcloud CLI / Application Default Credentials
        try:
            credentials, project = google.auth.default(
                scopes=["https://www.googleapis.com/auth/cloud-platform"]
            )
            self.client = bigquery.Client(project=self.project_id or project, credentials=credentials)
            self._connected = True
            self.auth_method = "gcloud CLI / ADC"
            logger.info("Connected to BigQuery project %s using Application Default Credentials",
                        self.project_id or project)
            return True
        except Exception as e:
            logger.warning("Failed to connect to BigQuery: %s", e)
            return False

    @property
    def is_connected(self) -> bool:
        """Check if connected to BigQuery"""
        return self._connected and self.client is not None

    def _table(self, name: str) -> str:
        return f"`{self.project_id}.{self.dataset_id}.{name}`"

    def query(self, sql: str, params: Dict[str, Any] = None) -> pd.DataFrame:
        """
        Execute a SQL query and return results as DataFrame

        Args:
            sql: Standard SQL with @name placeholders
            params: Scalar query parameters by name

        Raises:
            ConnectionError: no connection could be established
        """
        if not self.is_connected:
            if not self.connect():
                raise ConnectionError("Cannot connect to BigQuery")

        job_config = None
        if params:
            job_config = bigquery.QueryJobConfig(query_parameters=[
                bigquery.ScalarQueryParameter(name, _param_type(value), value)
                for name, value in params.items()
            ])
        return self.client.query(sql, job_config=job_config).to_dataframe()

    # -------------------------------------------------
    # Typed fetchers
    # -------------------------------------------------
    def get_growth_parameters(self) -> Dict:
        """
        Latest saved growth parameter set

        Returns:
            Dict accepted by config.params_from_dict (empty when nothing is saved)
        """
        sql = f"""
        SELECT *
        FROM {self._table(self.config.growth_parameters_table)}
        ORDER BY updated_at DESC
        LIMIT 1
        """
        df = self.query(sql)
        if df.empty:
            return {}

        row = df.iloc[0].to_dict()
        channels = row.get('channels')
        if isinstance(channels, str):
            row['channels'] = json.loads(channels)
        elif channels is not None:
            row['channels'] = [dict(ch) for ch in channels]
        return row

    def get_customers(self, registered_before: Optional[date] = None) -> pd.DataFrame:
        """Customer roster: id, registered_at, status, churned_at, plan_type"""
        sql = f"""
        SELECT id, registered_at, status, churned_at, plan_type
        FROM {self._table(self.config.customers_table)}
        """
        params = None
        if registered_before is not None:
            sql += "WHERE registered_at < @registered_before\n"
            params = {'registered_before': registered_before}
        sql += "ORDER BY registered_at"
        return self.query(sql, params)

    def get_daily_actuals(self, month: str) -> pd.DataFrame:
        """
        Daily actuals for one month, one row per day and channel

        Columns: date, channel, acquisitions, cost, new_acquisitions, churns, revenue, expenses
        """
        period = month_period(month)
        sql = f"""
        SELECT date, channel, acquisitions, cost, new_acquisitions, churns, revenue, expenses
        FROM {self._table(self.config.daily_actuals_table)}
        WHERE date BETWEEN @start_date AND @end_date
        ORDER BY date, channel
        """
        return self.query(sql, {
            'start_date': period.start_time.date(),
            'end_date': period.end_time.date(),
        })

    def get_monthly_kpis(self, month: str) -> Dict:
        """
        Actual KPIs for one month

        Returns:
            Dict with month, mrr, active_customers, new_acquisitions,
            churn_rate and expenses (empty when the month has no data)
        """
        period = month_period(month)
        sql = f"""
        WITH per_day AS (
            SELECT
                date,
                ANY_VALUE(revenue) AS revenue,
                ANY_VALUE(expenses) AS expenses,
                SUM(acquisitions) AS new_acquisitions
            FROM {self._table(self.config.daily_actuals_table)}
            WHERE date BETWEEN @start_date AND @end_date
            GROUP BY date
        ),
        daily AS (
            SELECT
                SUM(revenue) AS revenue,
                SUM(expenses) AS expenses,
                SUM(new_acquisitions) AS new_acquisitions
            FROM per_day
        ),
        base AS (
            SELECT
                COUNTIF(registered_at <= @end_date
                        AND (status = 'active' OR churned_at > @end_date)) AS active_customers,
                COUNTIF(churned_at BETWEEN @start_date AND @end_date) AS churned,
                COUNTIF(registered_at < @start_date
                        AND (status = 'active' OR churned_at >= @start_date)) AS opening_customers
            FROM {self._table(self.config.customers_table)}
        )
        SELECT
            daily.revenue AS mrr,
            base.active_customers,
            daily.new_acquisitions,
            SAFE_DIVIDE(base.churned, base.opening_customers) * 100 AS churn_rate,
            daily.expenses
        FROM daily CROSS JOIN base
        """
        df = self.query(sql, {
            'start_date': period.start_time.date(),
            'end_date': period.end_time.date(),
        })
        if df.empty or pd.isna(df.iloc[0]['mrr']):
            return {}
        row = df.fillna(0).iloc[0].to_dict()
        row['month'] = month
        return row

    def get_targets(self, periods: List[str]) -> pd.DataFrame:
        """Saved monthly targets (period, metric, value, unit)"""
        sql = f"""
        SELECT period, metric, value, unit
        FROM {self._table(self.config.targets_table)}
        WHERE period IN UNNEST(@periods)
        ORDER BY period, metric
        """
        if not self.is_connected and not self.connect():
            raise ConnectionError("Cannot connect to BigQuery")
        job_config = bigquery.QueryJobConfig(query_parameters=[
            bigquery.ArrayQueryParameter('periods', 'STRING', list(periods))
        ])
        return self.client.query(sql, job_config=job_config).to_dataframe()


def _param_type(value: Any) -> str:
    if isinstance(value, bool):
        return 'BOOL'
    if isinstance(value, int):
        return 'INT64'
    if isinstance(value, float):
        return 'FLOAT64'
    if isinstance(value, date):
        return 'DATE'
    return 'STRING'
