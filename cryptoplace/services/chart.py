from __future__ import annotations

from typing import Sequence

from cryptoplace.schemas.market import Chart, ChartPoint, PricePoint
from cryptoplace.utils.time import ms_to_utc


def date_label(timestamp_ms: int) -> str:
    """Short calendar date without the year, e.g. 1700000000000 -> "11/14" (UTC)."""
    dt = ms_to_utc(timestamp_ms)
    return f"{dt.month}/{dt.day}"


def build_chart(series: Sequence[PricePoint]) -> Chart:
    """
    (timestamp_ms, price) -> (date label, price), one point per input point,
    same order, prices untouched. An empty series is a "no data" chart.
    """
    points = [ChartPoint(date=date_label(p.timestamp_ms), price=p.price) for p in series]
    return Chart(has_data=bool(points), points=points)
