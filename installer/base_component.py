"""
Base component class for all component modules.

A component contributes an ordered list of steps to a provisioning plan and,
optionally, the services it leaves running. Components never run their own
steps; the plan hands them to the step executor.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from common.command_utils import get_symbols, log_setup
from common.file_utils import (
    atomic_write,
    backup_file,
    ensure_symlink,
    read_text_if_exists,
    symlink_points_to,
)
from installer.context import ProvisionContext
from sequencer.service_controller import ServiceState
from sequencer.step_executor import FailurePolicy, Step


class BaseComponent(ABC):
    """
    Base class for all component modules.
    """

    # Overridden by subclasses or set by the registry decorator
    metadata: Dict[str, Any] = {
        "description": "",
    }

    def __init__(
        self,
        context: ProvisionContext,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the component.

        Args:
            context: Settings, options, facts and templates of the run.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.context = context
        self.settings = context.settings
        self.options = context.options
        self.symbols = get_symbols(context.options)
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def steps(self) -> List[Step]:
        """
        The component's steps, in execution order.
        """

    def services(self) -> Dict[str, ServiceState]:
        """
        Services the component leaves running, by name.
        """
        return {}

    def service_state(
        self, name: str, package: Optional[str] = None, restart: bool = True
    ) -> ServiceState:
        """Enabled, running service; critical when listed in the run options."""
        return ServiceState(
            restart=restart,
            critical=name in self.options.critical_services,
            package=package,
        )

    def package_step(
        self,
        name: str,
        packages: Sequence[str],
        description: str = "",
        policy: FailurePolicy = FailurePolicy.FATAL,
    ) -> Step:
        """Step installing ``packages``, skipped when all are installed."""
        package_list = list(packages)

        def check() -> bool:
            return not self.context.packages.missing_packages(package_list)

        def action() -> None:
            log_setup(
                f"{self.symbols.get('package', '📦')} Installing {', '.join(package_list)}...",
                "info",
                self.logger,
            )
            self.context.packages.install(package_list)

        return Step(
            name=name,
            action=action,
            check=check,
            policy=policy,
            description=description or f"Install {', '.join(package_list)}",
        )

    def template_step(
        self,
        name: str,
        template_name: str,
        destination: Callable[[], Path],
        bindings: Callable[[], Dict[str, Any]],
        mode: Optional[int] = None,
        facts: Sequence[str] = (),
        description: str = "",
        policy: FailurePolicy = FailurePolicy.FATAL,
        backup: bool = True,
    ) -> Step:
        """
        Step rendering ``template_name`` into ``destination()`` with an atomic
        replace. Skipped when the file already holds the rendered text. A
        differing file is first copied to a timestamped backup unless
        ``backup`` is False.

        ``destination`` and ``bindings`` are called when the step runs so that
        they can use facts probed just before it.
        """

        def rendered() -> str:
            return self.context.render(template_name, bindings())

        def check() -> bool:
            return read_text_if_exists(destination()) == rendered()

        def action() -> None:
            path = destination()
            if backup:
                backup_file(path, self.logger)
            atomic_write(path, rendered(), mode=mode, current_logger=self.logger)

        return Step(
            name=name,
            action=action,
            check=check,
            policy=policy,
            facts=tuple(facts),
            description=description or f"Write {template_name}",
        )

    def symlink_step(
        self,
        name: str,
        target: Callable[[], Union[str, Path]],
        link_path: Callable[[], Union[str, Path]],
        facts: Sequence[str] = (),
        description: str = "",
        policy: FailurePolicy = FailurePolicy.FATAL,
    ) -> Step:
        """Step pointing ``link_path()`` at ``target()``."""

        def check() -> bool:
            return symlink_points_to(link_path(), target())

        def action() -> None:
            ensure_symlink(target(), link_path(), self.logger)

        return Step(
            name=name,
            action=action,
            check=check,
            policy=policy,
            facts=tuple(facts),
            description=description,
        )
