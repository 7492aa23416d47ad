"""
Program Progress Calculations

Pure functions over a beneficiary's counters. They accept anything that
exposes ``total_program_days`` and ``completed_days`` (ORM rows, pydantic
models) and never touch the database.

Completion policy: a beneficiary has completed the program once every
enrolled day is accounted for, i.e. ``completed_days >= total_program_days``
with at least one enrolled day. A beneficiary with no enrolled days is never
complete.
"""


def attendance_rate(completed_days: int, total_program_days: int) -> int:
    """
    Percentage of enrolled days completed, rounded half up

    Integer arithmetic keeps .5 cases exact: round(100c/t) == (200c + t) // 2t.
    """
    if total_program_days <= 0:
        return 0
    completed = min(max(completed_days, 0), total_program_days)
    return (200 * completed + total_program_days) // (2 * total_program_days)


def is_complete(beneficiary) -> bool:
    """True when every enrolled program day has been completed"""
    total = beneficiary.total_program_days or 0
    return total > 0 and (beneficiary.completed_days or 0) >= total


def days_remaining(beneficiary) -> int:
    return max(0, (beneficiary.total_program_days or 0) - (beneficiary.completed_days or 0))


def program_progress(beneficiary) -> int:
    return attendance_rate(beneficiary.completed_days or 0, beneficiary.total_program_days or 0)
