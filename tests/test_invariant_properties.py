"""Property-based tests for distance, accrual and leave balance invariants.

These use hypothesis to generate inputs and operation sequences and check
that the invariants hold for all of them, not just hand-picked examples.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from hypothesis import given, settings, strategies as st

from hrms_core.geo.distance import GPSPoint, calculate_distance
from hrms_core.leave.accrual import AccrualType, LeaveAccrualEngine
from hrms_core.leave.balance import (
    BalanceDelta,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
    holds_invariant,
)

points = st.builds(
    GPSPoint,
    latitude=st.floats(min_value=-90, max_value=90, allow_nan=False),
    longitude=st.floats(min_value=-180, max_value=180, allow_nan=False),
)

leave_days = st.decimals(
    min_value=Decimal("0.5"),
    max_value=Decimal("10"),
    places=1,
    allow_nan=False,
    allow_infinity=False,
)


class TestDistanceProperties:
    """Haversine distance is a well-behaved metric on the sphere."""

    @given(point=points)
    @settings(max_examples=200)
    def test_distance_to_self_is_zero(self, point: GPSPoint):
        assert calculate_distance(point, point) == Decimal("0.00")

    @given(a=points, b=points)
    @settings(max_examples=200)
    def test_symmetric(self, a: GPSPoint, b: GPSPoint):
        assert calculate_distance(a, b) == calculate_distance(b, a)

    @given(a=points, b=points)
    @settings(max_examples=200)
    def test_bounded_by_half_circumference(self, a: GPSPoint, b: GPSPoint):
        distance = calculate_distance(a, b)
        assert Decimal("0") <= distance <= Decimal("20015087")


class TestAccrualProperties:
    """Accrued days never decrease as the year goes on."""

    @given(
        joining_date=st.dates(min_value=date(2018, 1, 1), max_value=date(2024, 12, 31)),
        first=st.dates(min_value=date(2024, 1, 1), max_value=date(2024, 12, 31)),
        second=st.dates(min_value=date(2024, 1, 1), max_value=date(2024, 12, 31)),
        accrual_type=st.sampled_from(list(AccrualType)),
        days_per_year=st.integers(min_value=1, max_value=40),
        accrual_rate=st.one_of(
            st.none(),
            st.decimals(min_value=Decimal("0.5"), max_value=Decimal("3"), places=1),
        ),
        probation_period_days=st.one_of(st.none(), st.integers(min_value=0, max_value=365)),
    )
    @settings(max_examples=300)
    def test_monotonic_within_year(
        self,
        joining_date: date,
        first: date,
        second: date,
        accrual_type: AccrualType,
        days_per_year: int,
        accrual_rate: Decimal | None,
        probation_period_days: int | None,
    ):
        earlier, later = sorted((first, second))
        employee = SimpleNamespace(joining_date=joining_date)
        policy = SimpleNamespace(
            accrual_type=accrual_type,
            days_per_year=Decimal(days_per_year),
            accrual_rate=accrual_rate,
            probation_period_days=probation_period_days,
        )
        engine = LeaveAccrualEngine()

        before = engine.calculate_accrual(employee, policy, earlier)
        after = engine.calculate_accrual(employee, policy, later)

        assert Decimal("0") <= before <= after


@dataclass
class Ledger:
    """In-memory leave balance columns."""

    allocated: Decimal = Decimal("12")
    carried_forward: Decimal = Decimal("3")
    used: Decimal = Decimal("0")
    pending: Decimal = Decimal("0")
    expired: Decimal = Decimal("0")
    available: Decimal = Decimal("15")

    def apply(self, delta: BalanceDelta) -> None:
        self.used += delta.used
        self.pending += delta.pending
        self.available += delta.available


class TestLeaveBalanceProperties:
    """The balance equation holds after any sequence of transitions."""

    @given(
        requested=st.lists(leave_days, min_size=1, max_size=8),
        operations=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=7),
                st.sampled_from(
                    [
                        LeaveRequestStatus.APPROVED,
                        LeaveRequestStatus.REJECTED,
                        LeaveRequestStatus.CANCELLED,
                    ]
                ),
            ),
            max_size=30,
        ),
    )
    @settings(max_examples=200)
    def test_invariant_after_every_transition(
        self,
        requested: list[Decimal],
        operations: list[tuple[int, LeaveRequestStatus]],
    ):
        ledger = Ledger()
        statuses: list[LeaveRequestStatus] = []

        for days in requested:
            ledger.apply(LeaveRequestStateMachine.reservation_delta(days))
            statuses.append(LeaveRequestStatus.PENDING)
            assert holds_invariant(ledger)

        for index, target in operations:
            index %= len(requested)
            if not LeaveRequestStateMachine.can_transition(statuses[index], target):
                continue
            delta = LeaveRequestStateMachine.delta_for(statuses[index], target, requested[index])
            assert delta.is_balanced()
            ledger.apply(delta)
            statuses[index] = target
            assert holds_invariant(ledger)

        pending = [d for d, s in zip(requested, statuses) if s == LeaveRequestStatus.PENDING]
        approved = [d for d, s in zip(requested, statuses) if s == LeaveRequestStatus.APPROVED]
        assert ledger.pending == sum(pending, Decimal("0"))
        assert ledger.used == sum(approved, Decimal("0"))
