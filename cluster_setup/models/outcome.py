"""Step outcomes handed to the presentation layer."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class WizardStep(str, Enum):
    """Stages of the setup wizard, in order."""

    welcome = "welcome"
    worker_bootstrap = "worker_bootstrap"
    discovery = "discovery"
    bootstrap = "bootstrap"
    done = "done"


class OutcomeStatus(str, Enum):
    success = "success"
    warning = "warning"
    error = "error"


class StepOutcome(BaseModel):
    """Result of one wizard step and the stage to show next."""

    status: OutcomeStatus
    message: str
    next_step: WizardStep
    details: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.success

    @classmethod
    def success(cls, message: str, next_step: WizardStep, **data: Any) -> "StepOutcome":
        return cls(status=OutcomeStatus.success, message=message, next_step=next_step, data=data)

    @classmethod
    def warning(
        cls, message: str, next_step: WizardStep, details: str | None = None
    ) -> "StepOutcome":
        return cls(
            status=OutcomeStatus.warning, message=message, next_step=next_step, details=details
        )

    @classmethod
    def error(
        cls,
        message: str,
        next_step: WizardStep,
        details: str | None = None,
        errors: list[str] | None = None,
        **data: Any,
    ) -> "StepOutcome":
        return cls(
            status=OutcomeStatus.error,
            message=message,
            next_step=next_step,
            details=details,
            errors=list(errors or []),
            data=data,
        )
