# sequencer/facts.py
# -*- coding: utf-8 -*-
"""
Run-time fact discovery.

A fact is a value found on the host while provisioning, such as the PHP
version or the versioned FreeRADIUS configuration directory. Each fact has a
discovery function; the ``FactProber`` runs it at most once and caches the
result. A required fact that cannot be discovered raises ``FactNotFound``
naming the search that was performed, so a run stops before a later step
fails in a confusing way.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from common.command_utils import log_setup, run_command
from sequencer.config_models import RunOptions
from sequencer.errors import FactNotFound

module_logger = logging.getLogger(__name__)

Discovery = Callable[[], Optional[str]]


@dataclass(frozen=True)
class Fact:
    """A named run-time value and the function that discovers it."""

    name: str
    discover: Discovery
    required: bool = True
    description: str = ""


class FactProber:
    """Registry and cache of facts for one run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._facts: Dict[str, Fact] = {}
        self._values: Dict[str, Optional[str]] = {}

    def register(self, fact: Fact) -> Fact:
        if fact.name in self._facts:
            raise ValueError(f"Fact '{fact.name}' already registered")
        self._facts[fact.name] = fact
        return fact

    def __contains__(self, name: object) -> bool:
        return name in self._facts

    def is_probed(self, name: str) -> bool:
        return name in self._values

    def probe(self, name: str) -> Optional[str]:
        """
        Discover the value of fact ``name``, once.

        Raises:
            KeyError: No fact with that name is registered.
            FactNotFound: The fact is required and discovery found nothing.
        """
        if name in self._values:
            return self._values[name]
        if name not in self._facts:
            raise KeyError(f"No fact registered with name '{name}'")

        fact = self._facts[name]
        value = fact.discover()
        if value is not None:
            value = str(value).strip() or None

        if value is None:
            search = fact.description or f"discovery for '{name}'"
            if fact.required:
                log_setup(
                    f"Required fact '{name}' not found (searched: {search})",
                    "error",
                    self.logger,
                )
                raise FactNotFound(name, search)
            log_setup(
                f"Optional fact '{name}' not found (searched: {search})",
                "warning",
                self.logger,
            )
        else:
            log_setup(f"Fact '{name}' = {value}", "info", self.logger)

        self._values[name] = value
        return value

    def require(self, *names: str) -> Dict[str, Optional[str]]:
        """Probe every named fact and return their values."""
        return {name: self.probe(name) for name in names}

    @property
    def facts(self) -> Mapping[str, Optional[str]]:
        """A snapshot of the facts probed so far."""
        return dict(self._values)


def command_output(
    command: List[str],
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Discovery:
    """
    Discovery that runs ``command`` and yields its stripped stdout, or None
    when the command is missing or exits non-zero.
    """

    def discover() -> Optional[str]:
        try:
            result = run_command(
                command,
                options,
                check=False,
                capture_output=True,
                current_logger=current_logger,
            )
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired:
            return None
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip() or None

    return discover


def first_existing_dir(*candidates: Union[str, Path]) -> Discovery:
    """Discovery yielding the first candidate that is a directory."""

    def discover() -> Optional[str]:
        for candidate in candidates:
            if Path(candidate).is_dir():
                return str(candidate)
        return None

    return discover


def first_existing_file(*candidates: Union[str, Path]) -> Discovery:
    """Discovery yielding the first candidate that is a regular file."""

    def discover() -> Optional[str]:
        for candidate in candidates:
            if Path(candidate).is_file():
                return str(candidate)
        return None

    return discover


def first_matching_dir(root: Union[str, Path], pattern: str) -> Discovery:
    """
    Discovery searching below ``root`` for directories whose name matches the
    glob ``pattern``; the lexically first path wins.
    """

    def discover() -> Optional[str]:
        base = Path(root)
        if not base.is_dir():
            return None
        matches = sorted(
            str(path) for path in base.rglob(pattern) if path.is_dir()
        )
        return matches[0] if matches else None

    return discover


def first_of(*probes: Discovery) -> Discovery:
    """Discovery trying ``probes`` in order; the first non-empty result wins."""

    def discover() -> Optional[str]:
        for probe in probes:
            value = probe()
            if value:
                return value
        return None

    return discover
