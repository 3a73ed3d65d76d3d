"""Pay component and salary structure models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms_core.models.base import Base, TimestampMixin


class PayComponent(Base, TimestampMixin):
    """Reusable earning or deduction definition."""

    __tablename__ = "pay_component"

    component_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    component_type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    calculation_type: Mapped[str] = mapped_column(String, nullable=False)
    is_statutory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    formula: Mapped[str | None] = mapped_column(Text)
    rounding_rule: Mapped[str | None] = mapped_column(String)
    proration_rule: Mapped[str] = mapped_column(String, nullable=False, default="DAILY")
    effective_from: Mapped[date | None] = mapped_column(Date)
    effective_to: Mapped[date | None] = mapped_column(Date)
    depends_on: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint(
            "component_type IN ('EARNING', 'DEDUCTION')",
            name="pay_component_type_check",
        ),
        CheckConstraint(
            "calculation_type IN ('FIXED', 'PERCENTAGE', 'FORMULA', 'ATTENDANCE_BASED')",
            name="pay_component_calculation_type_check",
        ),
        CheckConstraint(
            "proration_rule IN ('DAILY', 'MONTHLY', 'NONE')",
            name="pay_component_proration_check",
        ),
    )


class SalaryStructure(Base, TimestampMixin):
    """Named, ordered collection of pay components."""

    __tablename__ = "salary_structure"

    structure_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    components: Mapped[list[SalaryStructureComponent]] = relationship(
        back_populates="structure",
        order_by="SalaryStructureComponent.order",
        cascade="all, delete-orphan",
    )


class SalaryStructureComponent(Base, TimestampMixin):
    """Structure-specific parameters for one pay component."""

    __tablename__ = "salary_structure_component"

    structure_component_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    structure_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_structure.structure_id", ondelete="CASCADE"),
        nullable=False,
    )
    component_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_component.component_id", ondelete="RESTRICT"),
        nullable=False,
    )
    value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(7, 4))
    base_component: Mapped[str | None] = mapped_column(String)
    min_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    max_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("structure_id", "component_id", name="structure_component_unique"),
    )

    # Relationships
    structure: Mapped[SalaryStructure] = relationship(back_populates="components")
    component: Mapped[PayComponent] = relationship(lazy="joined")
