"""Datasources.

Usage:
    from pullkit.platform.sources import ALL_SOURCES

    datasource = ALL_SOURCES["jira"]()
"""

from pullkit.platform.sources.identitynow import IdentityNowDatasource
from pullkit.platform.sources.jira import JiraDatasource
from pullkit.platform.sources.pagerduty import PagerDutyDatasource

ALL_SOURCES = {
    datasource.short_name: datasource
    for datasource in (JiraDatasource, PagerDutyDatasource, IdentityNowDatasource)
}

__all__ = ["ALL_SOURCES", "IdentityNowDatasource", "JiraDatasource", "PagerDutyDatasource"]
