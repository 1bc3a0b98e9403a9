from pydantic import BaseModel


class CycleReadinessCheck(BaseModel):
    """Whether a cycle can collect and score evaluations"""
    ready: bool
    can_open: bool
    checks: dict[str, bool]  # Individual check results
    warnings: list[str]  # Non-blocking warnings
    errors: list[str]  # Blocking errors


