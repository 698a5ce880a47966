"""
Timesheet Pay & Bill Calculator

Deterministic weekly payroll arithmetic shared by single and bulk timesheets.

Rules:
- Weekly hours are split at the overtime threshold:
  regular = min(total, threshold), overtime = max(0, total - threshold).
  With overtime disabled every hour is regular.
- Overtime hours are spread back over the days in proportion to each
  day's share of the week; the last worked day absorbs the cent remainder
  so per-day overtime always sums to the weekly figure.
- Jobseeker pay = regular * pay rate + overtime * OT pay rate + bonus - deduction.
- Client bill = regular * bill rate + overtime * OT bill rate.
- Missing overtime rates fall back to the regular rates; a missing
  threshold falls back to 40 hours.

Every amount is Decimal and rounded to cents (hours to 1/100th).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .decimal_math import (
    ZERO,
    Numeric,
    add,
    divide,
    hours,
    max_decimal,
    min_decimal,
    money,
    multiply,
    to_decimal,
    to_float,
)

logger = logging.getLogger(__name__)

DEFAULT_OVERTIME_THRESHOLD = Decimal("40")
MAX_HOURS_PER_DAY = Decimal("24")


class CalculationError(ValueError):
    """Raised when timesheet inputs cannot produce a valid result."""


# =============================================================================
# INPUT TYPES
# =============================================================================

@dataclass(frozen=True)
class DailyHours:
    """Hours worked on one calendar day."""
    date: date
    hours: Decimal

    @classmethod
    def create(cls, day: date, value: Numeric) -> "DailyHours":
        return cls(date=day, hours=to_decimal(value))


@dataclass(frozen=True)
class RateCard:
    """Pay/bill rates and overtime policy applied to a week of hours."""
    regular_pay_rate: Decimal
    regular_bill_rate: Decimal
    overtime_pay_rate: Optional[Decimal] = None
    overtime_bill_rate: Optional[Decimal] = None
    overtime_enabled: bool = False
    overtime_threshold: Optional[Decimal] = None

    @classmethod
    def create(
        cls,
        regular_pay_rate: Numeric,
        regular_bill_rate: Numeric,
        overtime_pay_rate: Optional[Numeric] = None,
        overtime_bill_rate: Optional[Numeric] = None,
        overtime_enabled: bool = False,
        overtime_threshold: Optional[Numeric] = None,
    ) -> "RateCard":
        """Build a rate card from loosely typed values (floats, strings, None)."""
        def optional(value):
            if value is None or value == "":
                return None
            return to_decimal(value)

        return cls(
            regular_pay_rate=to_decimal(regular_pay_rate),
            regular_bill_rate=to_decimal(regular_bill_rate),
            overtime_pay_rate=optional(overtime_pay_rate),
            overtime_bill_rate=optional(overtime_bill_rate),
            overtime_enabled=bool(overtime_enabled),
            overtime_threshold=optional(overtime_threshold),
        )

    @property
    def effective_overtime_pay_rate(self) -> Decimal:
        if self.overtime_pay_rate is None:
            return self.regular_pay_rate
        return self.overtime_pay_rate

    @property
    def effective_overtime_bill_rate(self) -> Decimal:
        if self.overtime_bill_rate is None:
            return self.regular_bill_rate
        return self.overtime_bill_rate

    @property
    def effective_threshold(self) -> Decimal:
        if self.overtime_threshold is None:
            return DEFAULT_OVERTIME_THRESHOLD
        return self.overtime_threshold

    def validate(self) -> None:
        for name in ("regular_pay_rate", "regular_bill_rate", "overtime_pay_rate", "overtime_bill_rate"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise CalculationError(f"{name} cannot be negative")
        if self.overtime_threshold is not None and self.overtime_threshold < 0:
            raise CalculationError("overtime_threshold cannot be negative")


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class DayBreakdown:
    date: date
    hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "hours": to_float(self.hours),
            "regular_hours": to_float(self.regular_hours),
            "overtime_hours": to_float(self.overtime_hours),
        }


@dataclass
class TimesheetCalculation:
    """Computed totals for one jobseeker's week."""
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    days: List[DayBreakdown]
    rates: RateCard
    regular_pay: Decimal
    overtime_pay: Decimal
    bonus: Decimal
    deduction: Decimal
    jobseeker_pay: Decimal
    regular_bill: Decimal
    overtime_bill: Decimal
    client_bill: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_hours": to_float(self.total_hours),
            "regular_hours": to_float(self.regular_hours),
            "overtime_hours": to_float(self.overtime_hours),
            "days": [d.to_dict() for d in self.days],
            "regular_pay_rate": to_float(self.rates.regular_pay_rate),
            "overtime_pay_rate": to_float(self.rates.effective_overtime_pay_rate),
            "regular_bill_rate": to_float(self.rates.regular_bill_rate),
            "overtime_bill_rate": to_float(self.rates.effective_overtime_bill_rate),
            "regular_pay": to_float(self.regular_pay),
            "overtime_pay": to_float(self.overtime_pay),
            "bonus_amount": to_float(self.bonus),
            "deduction_amount": to_float(self.deduction),
            "total_jobseeker_pay": to_float(self.jobseeker_pay),
            "regular_bill": to_float(self.regular_bill),
            "overtime_bill": to_float(self.overtime_bill),
            "total_client_bill": to_float(self.client_bill),
        }


@dataclass
class BulkTotals:
    """Grand totals across the jobseekers of a bulk timesheet."""
    total_hours: Decimal = ZERO
    total_regular_hours: Decimal = ZERO
    total_overtime_hours: Decimal = ZERO
    total_overtime_pay: Decimal = ZERO
    total_jobseeker_pay: Decimal = ZERO
    total_client_bill: Decimal = ZERO
    total_bonus: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO
    number_of_jobseekers: int = 0
    average_hours_per_jobseeker: Decimal = ZERO
    average_pay_per_jobseeker: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            result[name] = value if isinstance(value, int) else to_float(value)
        return result


# =============================================================================
# OPERATIONS
# =============================================================================

def split_hours(total: Numeric, rates: RateCard) -> Tuple[Decimal, Decimal]:
    """
    Split weekly hours into (regular, overtime).

    Examples:
        >>> split_hours(45, RateCard.create(20, 30, overtime_enabled=True))
        (Decimal('40.00'), Decimal('5.00'))
        >>> split_hours(45, RateCard.create(20, 30))
        (Decimal('45.00'), Decimal('0.00'))
    """
    total_d = to_decimal(total)
    if not rates.overtime_enabled:
        return hours(total_d), hours(ZERO)

    threshold = rates.effective_threshold
    regular = min_decimal(total_d, threshold)
    overtime = max_decimal(ZERO, total_d - threshold)
    return hours(regular), hours(overtime)


def distribute_overtime(
    daily_hours: Sequence[DailyHours],
    overtime_total: Numeric,
) -> List[Decimal]:
    """
    Spread weekly overtime across days by each day's share of total hours.

    Shares are worked out in hundredths of an hour: every day first gets
    its proportional share rounded down, then the leftover hundredths go
    one at a time to the days with the largest dropped fractions (later
    days first on ties). A day never gets more overtime than it has hours.

    Args:
        daily_hours: Days in week order
        overtime_total: Weekly overtime hours to distribute

    Returns:
        Per-day overtime, same order as ``daily_hours``; sums to
        overtime_total (capped at the week's hours)

    Examples:
        >>> days = [DailyHours.create(date(2025, 1, 6), 10), DailyHours.create(date(2025, 1, 7), 40)]
        >>> distribute_overtime(days, 10)
        [Decimal('2.00'), Decimal('8.00')]
    """
    caps = [int(hours(d.hours) * 100) for d in daily_hours]
    total = sum(caps)
    overtime = min(int(hours(overtime_total) * 100), total)

    if overtime <= 0 or total == 0:
        return [hours(ZERO) for _ in daily_hours]

    cents = []
    fractions = []
    for cap in caps:
        whole, part = divmod(overtime * cap, total)
        cents.append(min(whole, cap))
        fractions.append(part)

    leftover = overtime - sum(cents)
    by_fraction = sorted(range(len(caps)), key=lambda i: (fractions[i], i), reverse=True)
    while leftover > 0:
        for i in by_fraction:
            if leftover == 0:
                break
            if cents[i] < caps[i]:
                cents[i] += 1
                leftover -= 1

    return [hours(Decimal(c) / 100) for c in cents]


def _validate_days(daily_hours: Sequence[DailyHours]) -> None:
    for day in daily_hours:
        if day.hours < 0 or day.hours > MAX_HOURS_PER_DAY:
            raise CalculationError(
                f"Hours for {day.date.isoformat()} must be between 0 and 24 (got {day.hours})"
            )


def calculate_timesheet(
    daily_hours: Sequence[DailyHours],
    rates: RateCard,
    bonus: Numeric = 0,
    deduction: Numeric = 0,
) -> TimesheetCalculation:
    """
    Compute hours, pay and bill for one jobseeker's week.

    Args:
        daily_hours: Hours per day
        rates: Rate card and overtime policy
        bonus: Amount added to jobseeker pay
        deduction: Amount subtracted from jobseeker pay

    Returns:
        TimesheetCalculation with every amount rounded to cents

    Raises:
        CalculationError: On out-of-range hours, negative rates or
            adjustments, or a deduction larger than the earned pay
    """
    rates.validate()
    _validate_days(daily_hours)

    bonus_d = money(to_decimal(bonus))
    deduction_d = money(to_decimal(deduction))
    if bonus_d < 0:
        raise CalculationError("bonus_amount cannot be negative")
    if deduction_d < 0:
        raise CalculationError("deduction_amount cannot be negative")

    ordered = sorted(daily_hours, key=lambda d: d.date)
    total = hours(add(*[d.hours for d in ordered]))
    regular, overtime = split_hours(total, rates)
    per_day_overtime = distribute_overtime(ordered, overtime)

    days = [
        DayBreakdown(
            date=d.date,
            hours=hours(d.hours),
            regular_hours=hours(hours(d.hours) - ot),
            overtime_hours=ot,
        )
        for d, ot in zip(ordered, per_day_overtime)
    ]

    regular_pay = money(multiply(regular, rates.regular_pay_rate))
    overtime_pay = money(multiply(overtime, rates.effective_overtime_pay_rate))
    jobseeker_pay = money(regular_pay + overtime_pay + bonus_d - deduction_d)
    if jobseeker_pay < 0:
        raise CalculationError(
            f"Deduction of {deduction_d} exceeds earned pay of {regular_pay + overtime_pay + bonus_d}"
        )

    regular_bill = money(multiply(regular, rates.regular_bill_rate))
    overtime_bill = money(multiply(overtime, rates.effective_overtime_bill_rate))

    return TimesheetCalculation(
        total_hours=total,
        regular_hours=regular,
        overtime_hours=overtime,
        days=days,
        rates=rates,
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        bonus=bonus_d,
        deduction=deduction_d,
        jobseeker_pay=jobseeker_pay,
        regular_bill=regular_bill,
        overtime_bill=overtime_bill,
        client_bill=money(regular_bill + overtime_bill),
    )


def aggregate_bulk(calculations: Sequence[TimesheetCalculation]) -> BulkTotals:
    """
    Roll per-jobseeker results up into bulk timesheet grand totals.

    net_pay equals total_jobseeker_pay (bonus and deductions are already
    applied per jobseeker). Averages are 0 for an empty sequence.
    """
    count = len(calculations)
    if count == 0:
        return BulkTotals()

    total_hours = hours(add(*[c.total_hours for c in calculations]))
    total_pay = money(add(*[c.jobseeker_pay for c in calculations]))

    return BulkTotals(
        total_hours=total_hours,
        total_regular_hours=hours(add(*[c.regular_hours for c in calculations])),
        total_overtime_hours=hours(add(*[c.overtime_hours for c in calculations])),
        total_overtime_pay=money(add(*[c.overtime_pay for c in calculations])),
        total_jobseeker_pay=total_pay,
        total_client_bill=money(add(*[c.client_bill for c in calculations])),
        total_bonus=money(add(*[c.bonus for c in calculations])),
        total_deductions=money(add(*[c.deduction for c in calculations])),
        net_pay=total_pay,
        number_of_jobseekers=count,
        average_hours_per_jobseeker=hours(divide(total_hours, count)),
        average_pay_per_jobseeker=money(divide(total_pay, count)),
    )
