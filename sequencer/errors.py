# sequencer/errors.py
# -*- coding: utf-8 -*-
"""
Exception types raised by a provisioning run.

``MissingConfig``, ``FactNotFound`` and a fatal ``StepActionFailed`` end the
run at once. A warn-policy ``StepActionFailed`` and a non-critical
``ServiceStateUnreachable`` only end up in the run's report.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from sequencer.service_controller import ServiceReport
    from sequencer.step_executor import Report


class ProvisioningError(Exception):
    """Base class for every provisioning failure."""


class MissingConfig(ProvisioningError):
    """One or more required settings are absent, empty or invalid."""

    def __init__(
        self,
        missing: Iterable[str],
        problems: Optional[Dict[str, str]] = None,
        source: Optional[str] = None,
    ):
        self.missing: List[str] = list(missing)
        self.problems: Dict[str, str] = dict(problems or {})
        self.source = source
        details = ", ".join(
            f"{key} ({self.problems[key]})" if key in self.problems else key
            for key in self.missing
        )
        message = f"Missing or invalid required settings: {details}"
        if source:
            message += f" [source: {source}]"
        super().__init__(message)


class FactNotFound(ProvisioningError):
    """A required run-time fact could not be discovered."""

    def __init__(self, name: str, search: str):
        self.name = name
        self.search = search
        super().__init__(f"Fact '{name}' not found (searched: {search})")


class UnresolvedPlaceholder(ProvisioningError):
    """A template has placeholders for which no binding was supplied."""

    def __init__(self, template: str, placeholders: Iterable[str]):
        self.template = template
        self.placeholders: List[str] = sorted(placeholders)
        super().__init__(
            f"Template '{template}' has unresolved placeholders: "
            + ", ".join(self.placeholders)
        )


class StepActionFailed(ProvisioningError):
    """A step's check or action failed; ``detail`` is the external error text."""

    def __init__(
        self,
        step: str,
        detail: str,
        cause: Optional[BaseException] = None,
    ):
        self.step = step
        self.detail = detail
        self.cause = cause
        self.report: Optional["Report"] = None
        super().__init__(f"Step '{step}' failed: {detail}")


class ServiceStateUnreachable(ProvisioningError):
    """A critical service did not reach its requested state."""

    def __init__(
        self,
        services: Dict[str, str],
        report: Optional["ServiceReport"] = None,
    ):
        self.services = dict(services)
        self.report = report
        details = "; ".join(
            f"{name}: {detail}" for name, detail in self.services.items()
        )
        super().__init__(f"Services did not reach requested state: {details}")


def describe(error: Any) -> str:
    """One-line diagnostic for an error, used by the CLI on exit."""
    return f"{error.__class__.__name__}: {error}"
