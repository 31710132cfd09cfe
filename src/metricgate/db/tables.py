"""SQLAlchemy table definitions."""

from sqlalchemy import BigInteger, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from metricgate.db.base import Base


class GaugeTable(Base):
    """Gauges - one row per name, overwritten on every store."""

    __tablename__ = "gauges"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[float] = mapped_column(Float(precision=53), nullable=False)


class CounterTable(Base):
    """Counters - running totals, merged by addition."""

    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)
