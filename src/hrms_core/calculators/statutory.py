"""Statutory deductions: provident fund, state insurance, professional tax and TDS."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from hrms_core.calculators.types import (
    ComponentCalculationResult,
    PayComponentCategory,
    PayComponentType,
    TaxBracket,
)
from hrms_core.exceptions import ValidationError

CENT = Decimal("0.01")


def _default_tds_brackets() -> tuple[TaxBracket, ...]:
    return (
        TaxBracket(Decimal("0"), Decimal("250000"), Decimal("0")),
        TaxBracket(Decimal("250000"), Decimal("500000"), Decimal("0.05")),
        TaxBracket(Decimal("500000"), Decimal("1000000"), Decimal("0.20")),
        TaxBracket(Decimal("1000000"), None, Decimal("0.30")),
    )


@dataclass(frozen=True)
class StatutoryRates:
    """Rates and limits for monthly statutory deductions."""

    pf_rate: Decimal = Decimal("0.12")
    pf_cap: Decimal = Decimal("1800")
    esi_rate: Decimal = Decimal("0.0075")
    esi_threshold: Decimal = Decimal("25000")  # monthly gross, inclusive
    professional_tax: Decimal = Decimal("200")
    tds_brackets: tuple[TaxBracket, ...] = field(default_factory=_default_tds_brackets)

    def __post_init__(self) -> None:
        for name in ("pf_rate", "esi_rate"):
            value = getattr(self, name)
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValidationError(f"{name} must be between 0 and 1, got {value}")
        for name in ("pf_cap", "esi_threshold", "professional_tax"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative")
        if not self.tds_brackets:
            raise ValidationError("At least one TDS bracket is required")

        previous_max: Decimal | None = Decimal("0")
        for bracket in self.tds_brackets:
            if previous_max is None or bracket.min_amount != previous_max:
                raise ValidationError("TDS brackets must be contiguous and start at 0")
            previous_max = bracket.max_amount


@dataclass(frozen=True)
class StatutoryDeductions:
    """Monthly statutory deduction amounts."""

    pf: Decimal
    esi: Decimal
    tds: Decimal
    pt: Decimal

    @property
    def total(self) -> Decimal:
        return self.pf + self.esi + self.tds + self.pt


DEFAULT_RATES = StatutoryRates()


def calculate_pf(basic: Decimal, rates: StatutoryRates = DEFAULT_RATES) -> Decimal:
    """Employee PF contribution: a share of basic, capped."""
    return min(basic * rates.pf_rate, rates.pf_cap).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_esi(gross: Decimal, rates: StatutoryRates = DEFAULT_RATES) -> Decimal:
    """Employee ESI contribution; nothing above the gross threshold."""
    if gross > rates.esi_threshold:
        return Decimal("0.00")
    return (gross * rates.esi_rate).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_professional_tax(gross: Decimal, rates: StatutoryRates = DEFAULT_RATES) -> Decimal:
    return rates.professional_tax.quantize(CENT)


def calculate_tds(gross: Decimal, rates: StatutoryRates = DEFAULT_RATES) -> Decimal:
    """Monthly TDS from progressive slabs applied to annualized gross."""
    annual = gross * 12
    if annual <= 0:
        return Decimal("0.00")

    tax = Decimal("0")
    for bracket in rates.tds_brackets:
        if annual <= bracket.min_amount:
            break
        upper = annual if bracket.max_amount is None else min(annual, bracket.max_amount)
        tax += bracket.flat_amount + (upper - bracket.min_amount) * bracket.rate

    return (tax / 12).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_statutory_deductions(
    basic: Decimal,
    gross: Decimal,
    rates: StatutoryRates | None = None,
) -> StatutoryDeductions:
    rates = rates or DEFAULT_RATES
    return StatutoryDeductions(
        pf=calculate_pf(basic, rates),
        esi=calculate_esi(gross, rates),
        tds=calculate_tds(gross, rates),
        pt=calculate_professional_tax(gross, rates),
    )


STATUTORY_CODES = ("PF", "ESI", "TDS", "PT")


def apply_statutory(
    results: Sequence[ComponentCalculationResult],
    rates: StatutoryRates | None = None,
) -> list[ComponentCalculationResult]:
    """Replace PF/ESI/TDS/PT deduction values with the statutory amounts.

    Basic and gross come from the run's own earnings. Components that failed
    validation keep their zero value and errors.
    """
    earnings = [r for r in results if r.type == PayComponentType.EARNING]
    gross = sum((r.calculated_value for r in earnings), Decimal("0"))
    basic = sum(
        (r.calculated_value for r in earnings if r.category == PayComponentCategory.BASIC),
        Decimal("0"),
    )
    deductions = calculate_statutory_deductions(basic, gross, rates)
    amounts = {
        "PF": deductions.pf,
        "ESI": deductions.esi,
        "TDS": deductions.tds,
        "PT": deductions.pt,
    }

    applied: list[ComponentCalculationResult] = []
    for result in results:
        amount = amounts.get(result.component_code)
        if amount is None or result.type != PayComponentType.DEDUCTION or not result.success:
            applied.append(result)
            continue
        applied.append(replace(result, calculated_value=amount, is_statutory=True))
    return applied
