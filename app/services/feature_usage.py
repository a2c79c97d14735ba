# app/services/feature_usage.py
#
# Feature Usage Log
# Appends one row per feature activation and counts them on demand.

from typing import Dict

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Connection

from models import feature_used


def record_feature_use(conn: Connection, feature: str) -> None:
    conn.execute(insert(feature_used).values(feature=feature))


def feature_use_count(conn: Connection, feature: str) -> int:
    """How many times `feature` has been activated."""
    return conn.execute(
        select(func.count()).select_from(feature_used).where(feature_used.c.feature == feature)
    ).scalar_one()


def feature_use_counts(conn: Connection) -> Dict[str, int]:
    rows = conn.execute(
        select(feature_used.c.feature, func.count())
        .group_by(feature_used.c.feature)
        .order_by(feature_used.c.feature)
    ).all()
    return {feature: count for feature, count in rows}
