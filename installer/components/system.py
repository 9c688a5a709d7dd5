# installer/components/system.py
# -*- coding: utf-8 -*-
"""
Package index refresh and system upgrade, run before anything is installed.
"""

from typing import List

from installer.base_component import BaseComponent
from installer.registry import ComponentRegistry
from sequencer.step_executor import FailurePolicy, Step


@ComponentRegistry.register(
    name="system",
    metadata={
        "description": "Refreshes the apt package index and upgrades installed packages.",
    },
)
class SystemComponent(BaseComponent):
    def steps(self) -> List[Step]:
        steps = [
            Step(
                name="update-package-index",
                action=lambda: self.context.packages.update(),
                description="Update apt package lists",
            )
        ]
        # Upgrades touch unrelated packages; a failure there should not stop
        # the RADIUS setup.
        if self.options.upgrade_system:
            steps.append(
                Step(
                    name="upgrade-packages",
                    action=lambda: self.context.packages.upgrade(),
                    policy=FailurePolicy.WARN,
                    description="Upgrade installed packages",
                )
            )
        return steps
