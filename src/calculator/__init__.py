from .timesheet_calculator import (
    BulkTotals,
    CalculationError,
    DailyHours,
    DayBreakdown,
    RateCard,
    TimesheetCalculation,
    aggregate_bulk,
    calculate_timesheet,
    distribute_overtime,
    split_hours,
    DEFAULT_OVERTIME_THRESHOLD,
)
from .weeks import format_week_period, validate_daily_dates, validate_week, week_end

__all__ = [
    "BulkTotals",
    "CalculationError",
    "DailyHours",
    "DayBreakdown",
    "RateCard",
    "TimesheetCalculation",
    "aggregate_bulk",
    "calculate_timesheet",
    "distribute_overtime",
    "split_hours",
    "DEFAULT_OVERTIME_THRESHOLD",
    "format_week_period",
    "validate_daily_dates",
    "validate_week",
    "week_end",
]
