"""SQLAlchemy ORM models for bot state, price history, tick summaries and orders."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LegStateRow(Base):
    """Budget-cycle state for one leg ("puts" or "calls")."""

    __tablename__ = "leg_states"

    leg = Column(String(16), primary_key=True)
    cycle_start = Column(Float, nullable=True)  # unix seconds
    net_committed = Column(Float, nullable=False, default=0.0)
    unspent_carry = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<LegStateRow(leg={self.leg}, net_committed={self.net_committed})>"


class SpotPrice(Base):
    """One spot observation with the momentum computed on that tick."""

    __tablename__ = "spot_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Float, nullable=False, index=True)
    price = Column(Float, nullable=False)
    medium_momentum = Column(JSON, nullable=True)
    short_momentum = Column(JSON, nullable=True)
    three_day_high = Column(Float, nullable=True)
    three_day_low = Column(Float, nullable=True)
    seven_day_high = Column(Float, nullable=True)
    seven_day_low = Column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<SpotPrice(timestamp={self.timestamp}, price={self.price})>"


class TickSummary(Base):
    """Structured per-tick summary; also the ratchet's history."""

    __tablename__ = "ticks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Float, nullable=False, index=True)
    summary = Column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<TickSummary(id={self.id}, timestamp={self.timestamp})>"


class OrderRecord(Base):
    """Every submission attempt, successful or not."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Float, nullable=False, index=True)
    leg = Column(String(16), nullable=False)
    action = Column(String(16), nullable=False)  # buy_put, sell_put, sell_call, buy_call
    success = Column(Boolean, nullable=False)
    reason = Column(String(64), nullable=True)
    error = Column(Text, nullable=True)
    order_id = Column(String(128), nullable=True)
    instrument_name = Column(String(64), nullable=False)
    strike = Column(Float, nullable=True)
    expiry = Column(Float, nullable=True)
    delta = Column(Float, nullable=True)
    price = Column(Float, nullable=True)
    intended_amount = Column(Float, nullable=True)
    filled_amount = Column(Float, nullable=True)
    fill_price = Column(Float, nullable=True)
    total_value = Column(Float, nullable=True)
    fill_assumed = Column(Boolean, default=False)
    spot_price = Column(Float, nullable=True)
    paper = Column(Boolean, default=False)
    raw_response = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<OrderRecord(id={self.id}, action={self.action}, "
            f"instrument={self.instrument_name}, success={self.success})>"
        )


class OptionSnapshot(Base):
    """Enriched candidate quote captured on a tick."""

    __tablename__ = "options_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Float, nullable=False, index=True)
    leg = Column(String(16), nullable=False)
    instrument_name = Column(String(64), nullable=False)
    strike = Column(Float, nullable=False)
    expiry = Column(Float, nullable=False)
    delta = Column(Float, nullable=True)
    ask_price = Column(Float, nullable=True)
    ask_size = Column(Float, nullable=True)
    bid_price = Column(Float, nullable=True)
    bid_size = Column(Float, nullable=True)
    mark_price = Column(Float, nullable=True)
    index_price = Column(Float, nullable=True)
    implied_vol = Column(Float, nullable=True)
    open_interest = Column(Float, nullable=True)
    score = Column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<OptionSnapshot(instrument={self.instrument_name}, timestamp={self.timestamp})>"
