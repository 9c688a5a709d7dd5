# installer/main_installer.py
# -*- coding: utf-8 -*-
"""
Main entry point for the RADIUS server setup.
Handles argument parsing, logging setup, settings validation, and runs the
selected profile's steps followed by its services.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from common.command_utils import get_symbols, log_setup
from common.core_utils import setup_logging
from common.system_utils import is_root
from installer import config as static_config
from installer.config_models import SECRET_FIELDS, RadiusSettings
from installer.context import ProvisionContext
from installer.facts import register_facts
from installer.plans import PROFILES, Profile, get_profile
from sequencer.config_loader import (
    SettingsSource,
    load_run_options,
    load_settings,
    setting_key,
)
from sequencer.config_models import RunOptions
from sequencer.errors import (
    ProvisioningError,
    ServiceStateUnreachable,
    StepActionFailed,
    describe,
)
from sequencer.facts import FactProber
from sequencer.service_controller import ServiceController, ServiceReport
from sequencer.step_executor import Report, StepExecutor

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ProvisionResult:
    report: Report
    services: ServiceReport
    summary: List[str] = field(default_factory=list)


def provision(
    profile_name: str,
    settings_source: SettingsSource,
    options: Optional[RunOptions] = None,
    executor: Optional[StepExecutor] = None,
    controller: Optional[ServiceController] = None,
    current_logger: Optional[logging.Logger] = None,
) -> ProvisionResult:
    """
    Run one provisioning profile end to end.

    Settings are validated before anything else happens; a ``MissingConfig``
    leaves the host untouched. The profile's steps then run in order and the
    service states are applied last.

    Raises:
        KeyError: Unknown profile.
        MissingConfig: Required settings are missing or invalid.
        FactNotFound: A required fact could not be discovered.
        UnresolvedPlaceholder: A template lacks a binding.
        StepActionFailed: A fatal step failed; ``report`` is attached.
        ServiceStateUnreachable: A critical service did not reach its state.
    """
    logger_to_use = current_logger if current_logger else logger
    options = options or RunOptions()
    symbols = get_symbols(options)
    profile = get_profile(profile_name)

    settings = load_settings(
        settings_source, profile.settings_schema, logger_to_use
    )

    prober = executor.prober if executor is not None else FactProber(logger_to_use)
    register_facts(prober, settings, options, logger_to_use)
    context = ProvisionContext(
        settings=settings, options=options, prober=prober, logger=logger_to_use
    )
    if executor is None:
        executor = StepExecutor(prober, options, logger_to_use)
    if controller is None:
        controller = ServiceController(options=options, logger=logger_to_use)

    log_setup(
        f"{symbols.get('rocket', '🚀')} Provisioning profile '{profile.name}': {profile.description}",
        "info",
        logger_to_use,
    )
    report = executor.run(profile.steps(context, logger_to_use))
    for line in report.summary_lines():
        log_setup(line, "info", logger_to_use)

    log_setup(
        f"{symbols.get('gear', '⚙️')} Applying service states...",
        "info",
        logger_to_use,
    )
    service_report = controller.apply(profile.services(context, logger_to_use))

    summary = profile.summary(context)
    return ProvisionResult(report, service_report, summary)


def view_configuration(
    settings: RadiusSettings,
    options: RunOptions,
    current_logger: Optional[logging.Logger] = None,
    profile: Optional[Profile] = None,
) -> None:
    """
    Logs the effective settings (secrets masked), the run options and, when
    a profile is given, the components it runs.
    """
    logger_to_use = current_logger if current_logger else logger
    symbols = get_symbols(options)

    config_text = f"{symbols.get('info', 'ℹ️')} Current effective configuration values:\n\n"
    for name in type(settings).model_fields:
        value: Any = getattr(settings, name)
        if name in SECRET_FIELDS:
            value = "********"
        key = setting_key(type(settings), name)
        config_text += f"  {key + ':':<31} {value}\n"
    config_text += "\n"
    for name, value in options.model_dump(exclude={"symbols"}).items():
        config_text += f"  {name + ':':<31} {value}\n"
    if profile is not None:
        config_text += f"\n  Components of the '{profile.name}' profile:\n"
        for name, description in profile.component_descriptions():
            config_text += f"    {name + ':':<29} {description}\n"
    log_setup(config_text, "info", logger_to_use)


def _log_failure_report(
    error: Union[StepActionFailed, ServiceStateUnreachable],
    current_logger: logging.Logger,
) -> None:
    if error.report is None:
        return
    for line in error.report.summary_lines():
        log_setup(line, "error", current_logger)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FreeRADIUS / daloRADIUS Server Setup",
        epilog="Example: sudo python3 ./install.py --profile daloradius --env-file .env",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        add_help=False,
    )
    parser.add_argument(
        "-h",
        "--help",
        action="help",
        default=argparse.SUPPRESS,
        help="Show this help message and exit.",
    )
    parser.add_argument(
        "--profile",
        choices=sorted(PROFILES),
        default="freeradius",
        help="Which server setup to provision.",
    )
    parser.add_argument(
        "--env-file",
        default=static_config.ENV_FILE_DEFAULT,
        help="Path to the KEY=value settings file.",
    )
    parser.add_argument(
        "--config",
        default=static_config.CONFIG_FILE_DEFAULT,
        help="Path to the optional YAML run options file.",
    )
    parser.add_argument(
        "--view-config",
        action="store_true",
        help="View current configuration settings and exit.",
    )
    options_group = parser.add_argument_group(
        "Run Option Overrides (CLI > YAML > Defaults)"
    )
    options_group.add_argument(
        "--templates-dir",
        default=None,
        help="Directory whose <name>.tmpl files override the shipped templates.",
    )
    options_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Timeout in seconds for each external command.",
    )
    options_group.add_argument(
        "--skip-upgrade",
        action="store_true",
        help="Do not run 'apt-get upgrade'.",
    )
    logging_group = parser.add_argument_group("Logging")
    logging_group.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Console and file log level.",
    )
    logging_group.add_argument(
        "--log-file",
        default=None,
        help="Also write the log to this file.",
    )
    dev_group = parser.add_argument_group("Developer Options")
    dev_group.add_argument(
        "--skip-root-check",
        action="store_true",
        help="Run without root; 'sudo' is used for privileged commands.",
    )
    return parser


def main_installer_entry(cli_args_list: Optional[List[str]] = None) -> int:
    parser = build_parser()
    parsed_cli_args = parser.parse_args(cli_args_list)

    overrides: Dict[str, Any] = {
        "command_timeout": parsed_cli_args.timeout,
        "templates_dir": (
            Path(parsed_cli_args.templates_dir)
            if parsed_cli_args.templates_dir
            else None
        ),
    }
    if parsed_cli_args.skip_upgrade:
        overrides["upgrade_system"] = False
    options = load_run_options(parsed_cli_args.config, overrides, logger)
    symbols = get_symbols(options)

    setup_logging(
        log_level=getattr(logging, parsed_cli_args.log_level),
        log_file=parsed_cli_args.log_file,
        log_to_console=True,
        log_prefix=options.log_prefix,
        symbols=symbols,
    )
    log_setup(
        f"{symbols.get('sparkles', '✨')} RADIUS Server Setup (v{static_config.SCRIPT_VERSION}) ...",
        "info",
        logger,
    )

    profile = get_profile(parsed_cli_args.profile)

    if parsed_cli_args.view_config:
        try:
            settings = load_settings(
                parsed_cli_args.env_file, profile.settings_schema, logger
            )
        except ProvisioningError as e:
            log_setup(
                f"{symbols.get('error', '❌')} {describe(e)}", "error", logger
            )
            return 1
        view_configuration(settings, options, logger, profile)
        return 0

    if not is_root():
        if not parsed_cli_args.skip_root_check:
            log_setup(
                f"{symbols.get('error', '❌')} Please run this script as root or with sudo.",
                "critical",
                logger,
            )
            return 1
        log_setup(
            f"{symbols.get('info', 'ℹ️')} Script not root. 'sudo' will be used.",
            "info",
            logger,
        )

    try:
        result = provision(
            parsed_cli_args.profile,
            parsed_cli_args.env_file,
            options,
            current_logger=logger,
        )
    except (StepActionFailed, ServiceStateUnreachable) as e:
        _log_failure_report(e, logger)
        log_setup(
            f"{symbols.get('critical', '🔥')} {describe(e)}", "critical", logger
        )
        return 1
    except ProvisioningError as e:
        log_setup(
            f"{symbols.get('critical', '🔥')} {describe(e)}", "critical", logger
        )
        return 1

    for line in result.services.summary_lines():
        log_setup(line, "info", logger)

    if not result.report.ok or not result.services.ok:
        log_setup(
            f"{symbols.get('warning', '⚠️')} Setup finished with non-fatal failures; see the report above.",
            "warning",
            logger,
        )
    log_setup(
        f"{symbols.get('sparkles', '✨')} Installation completed successfully!",
        "success",
        logger,
    )
    for line in result.summary:
        log_setup(line, "info", logger)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main_installer_entry())
