"""
Database models for the negotiated-rate catalog.

Two tables: one row per MRF service (billing code entry) and one row per
flattened negotiated price belonging to it.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (  # type: ignore
    JSON, CheckConstraint, Date, DateTime, Enum as SQLEnum, ForeignKey,
    Index, Integer, Numeric, String, Text, func
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship  # type: ignore

NEGOTIATED_TYPES = ("percentage", "negotiated")
BILLING_CLASSES = ("professional", "institutional")


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class InsuranceService(Base):
    """
    One billable procedure/code entry with its negotiation metadata.

    Created once per top-level record of an MRF document.
    """
    __tablename__ = "insurance_services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    negotiation_arrangement: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    billing_code_type: Mapped[str] = mapped_column(String(20), nullable=False)
    billing_code_type_version: Mapped[str] = mapped_column(String(20), nullable=False)
    billing_code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Timestamps are filled in by the store
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    negotiated_rates: Mapped[List["NegotiatedRate"]] = relationship(
        "NegotiatedRate",
        back_populates="service",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_billing_code", "billing_code"),
        Index("idx_name", "name"),
        Index("idx_negotiation_arrangement", "negotiation_arrangement"),
    )


class NegotiatedRate(Base):
    """
    A single negotiated price for a service.

    The source nests prices inside rate groups; each row here is one
    (rate group x price) pair and carries the group's provider references.
    """
    __tablename__ = "negotiated_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("insurance_services.id", ondelete="CASCADE"), nullable=False)
    provider_references: Mapped[list] = mapped_column(JSON, nullable=False)
    negotiated_type: Mapped[str] = mapped_column(
        SQLEnum(*NEGOTIATED_TYPES, name="negotiated_type", create_constraint=True),
        nullable=False,
    )
    negotiated_rate: Mapped[Decimal] = mapped_column(
        Numeric(15, 2, asdecimal=True), nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    service_codes: Mapped[list] = mapped_column(JSON, nullable=False)
    billing_class: Mapped[str] = mapped_column(
        SQLEnum(*BILLING_CLASSES, name="billing_class", create_constraint=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    service: Mapped["InsuranceService"] = relationship(
        "InsuranceService", back_populates="negotiated_rates")

    __table_args__ = (
        CheckConstraint("negotiated_rate >= 0", name="negotiated_rate_non_negative"),
        Index("idx_service_id", "service_id"),
        Index("idx_negotiated_type", "negotiated_type"),
        Index("idx_billing_class", "billing_class"),
        Index("idx_expiration_date", "expiration_date"),
    )
