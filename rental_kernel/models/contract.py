"""
Module: rental_kernel.models.contract
Responsibility: ORM persistence for the rental contract aggregate root.  One
    row carries identity, lifecycle status, rental terms, derived money,
    hand-over/return data, settlement results, the payment ledger, and the
    actor/timestamp pair of every lifecycle transition.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - contract_number is globally unique (uq_rental_contract_number) and
      never changes once assigned (ORM listener in db/immutability.py).
    - version is the mapper's version_id_col: every UPDATE carries
      ``WHERE id = ? AND version = ?``, so two transactions that loaded the
      same contract cannot both write it.
    - Money columns are Numeric(38, 9); nothing here is a float.
    - Rows are never deleted; disable/enable is the only removal mechanism.

Failure modes:
    - IntegrityError on duplicate contract_number.
    - StaleDataError on flush when another transaction bumped the version
      (translated to StateConflictError by ContractService).
    - ImmutabilityViolationError on DELETE, on contract_number change, or
      on changes to a closed/finalized contract outside the refund and
      soft-delete fields.

Audit relevance:
    Every status change is stamped with who/when, and each stamp is
    written exactly once by the transition that owns it.  Together with
    contract_edits and audit_log_entries this is the complete history of a
    rental from quote to closure.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    DRAFT = "draft"            # Editable quote
    CONFIRMED = "confirmed"    # Terms locked, vehicle reserved
    ACTIVE = "active"          # Vehicle handed over
    COMPLETED = "completed"    # Vehicle returned, settlement computed
    CLOSED = "closed"          # Final
    FINALIZED = "finalized"    # Legacy terminal status, never assigned


class RentalType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class HirerType(str, Enum):
    """Who is contractually responsible for the hire."""

    DIRECT = "direct"
    WITH_SPONSOR = "with_sponsor"
    FROM_COMPANY = "from_company"


class PaymentStatus(str, Enum):
    """
    Stored payment sub-state.

    PENDING  -- nothing received (unpaid)
    PARTIAL  -- security deposit received (deposit_paid)
    PAID     -- final payment received or contract closed (fully_paid)
    REFUNDED -- deposit returned after closure
    """

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class RentalContract(TrackedBase):
    """
    Vehicle rental contract (aggregate root).

    Guarantees:
        - contract_number is unique and immutable.
        - status follows draft -> confirmed -> active -> completed -> closed.
        - subtotal, vat_amount, total_amount, security_deposit and every
          settlement column are written only by the kernel's calculator.

    Non-goals:
        - This model does NOT enforce transition legality; that is
          ContractService's job.
        - Customer, vehicle and person records live in an external
          directory; only their ids are stored here.
    """

    __tablename__ = "rental_contracts"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_rental_contract_number"),
        Index("idx_rental_contract_status", "status"),
        Index("idx_rental_contract_vehicle_dates", "vehicle_id", "start_date", "end_date"),
        Index("idx_rental_contract_customer", "customer_id"),
        Index("idx_rental_contract_disabled", "disabled"),
    )

    # =========================================================================
    # Identity and status
    # =========================================================================

    contract_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Sequential human-facing contract number",
    )

    status: Mapped[ContractStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.DRAFT,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Optimistic concurrency token",
    )

    # =========================================================================
    # Parties and vehicle
    # =========================================================================

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    vehicle_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    hirer_type: Mapped[HirerType] = mapped_column(
        String(20),
        nullable=False,
        default=HirerType.DIRECT,
    )

    sponsor_person_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
        doc="Sponsoring person, required when hirer_type is with_sponsor",
    )

    company_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Hiring company, required when hirer_type is from_company",
    )

    # =========================================================================
    # Rental terms
    # =========================================================================

    rental_type: Mapped[RentalType] = mapped_column(
        String(20),
        nullable=False,
        default=RentalType.DAILY,
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    rental_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    rental_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)

    pickup_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    dropoff_location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    daily_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    weekly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    monthly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    total_days: Mapped[int] = mapped_column(Integer, nullable=False)

    mileage_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="Allowed km per day; None means unlimited",
    )

    extra_km_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    accident_liability: Mapped[Decimal | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    terms_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # =========================================================================
    # Derived money (calculator output only)
    # =========================================================================

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    vat_percentage: Mapped[Decimal] = mapped_column(
        nullable=False,
        doc="VAT rate applied when money was last derived",
    )

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    security_deposit: Mapped[Decimal] = mapped_column(nullable=False)

    # =========================================================================
    # Hand-over and return
    # =========================================================================

    odometer_start: Mapped[int | None] = mapped_column(Integer, nullable=True)
    odometer_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fuel_level_start: Mapped[str | None] = mapped_column(String(20), nullable=True)
    fuel_level_end: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vehicle_condition: Mapped[str | None] = mapped_column(Text, nullable=True)

    # =========================================================================
    # Settlement (written once, at complete)
    # =========================================================================

    extra_km_driven: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extra_km_charge: Mapped[Decimal | None] = mapped_column(nullable=True)
    fuel_charge: Mapped[Decimal | None] = mapped_column(nullable=True)
    damage_charge: Mapped[Decimal | None] = mapped_column(nullable=True)
    other_charges: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_extra_charges: Mapped[Decimal | None] = mapped_column(nullable=True)
    outstanding_balance: Mapped[Decimal | None] = mapped_column(nullable=True)

    # =========================================================================
    # Payment ledger
    # =========================================================================

    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_paid_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deposit_paid_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    final_payment_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    final_payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    final_payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    deposit_refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_refunded_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    # =========================================================================
    # Lifecycle stamps
    # =========================================================================

    confirmed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    activated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    completed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Legacy: written by an earlier finalize flow, read-only here
    finalized_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # Soft delete (orthogonal to status)
    # =========================================================================

    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    disabled_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    disabled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<RentalContract #{self.contract_number} ({self.status})>"

    @property
    def is_terminal(self) -> bool:
        """Closed or legacy finalized; str-valued status compares equal."""
        return self.status in (ContractStatus.CLOSED, ContractStatus.FINALIZED)
