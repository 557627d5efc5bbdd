"""Fixed points in facility time shared by the test modules."""

from datetime import date, datetime

TODAY = date(2025, 6, 10)
TOMORROW = date(2025, 6, 11)
NOW = datetime(2025, 6, 10, 8, 0)
