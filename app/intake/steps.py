"""
Fixed step schema of the intake wizard.
"""
from dataclasses import dataclass
from typing import Tuple
from app.intake.draft import group_fields


@dataclass(frozen=True)
class IntakeStep:
    number: int
    name: str
    short_name: str
    group: str  # Field group of the draft this step edits

    @property
    def fields(self) -> Tuple[str, ...]:
        return group_fields(self.group)


STEPS: Tuple[IntakeStep, ...] = (
    IntakeStep(1, "Personal Info", "Personal", "personal"),
    IntakeStep(2, "Address", "Address", "address"),
    IntakeStep(3, "Filing Status", "Filing", "filing"),
    IntakeStep(4, "Dependents", "Dependents", "dependents"),
    IntakeStep(5, "Income", "Income", "income"),
    IntakeStep(6, "Deductions", "Deductions", "deductions"),
    IntakeStep(7, "Documents", "Documents", "documents"),
    IntakeStep(8, "Review & Submit", "Review", "notes"),
)

FIRST_STEP = STEPS[0].number
LAST_STEP = STEPS[-1].number


def get_step(number: int) -> IntakeStep:
    if not FIRST_STEP <= number <= LAST_STEP:
        raise ValueError(f"Step must be between {FIRST_STEP} and {LAST_STEP}, got {number}")
    return STEPS[number - 1]
