# sequencer/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for provisioning runs.

Two kinds of configuration are loaded here:

1. Settings: the flat ``KEY=value`` file (``.env``) holding the secrets and
   site values a run needs. It is validated against a caller-supplied
   ``ProvisionSettings`` schema. Every missing, empty or invalid required key
   is reported at once through ``MissingConfig`` before anything touches the
   host. Process environment variables override the file.
2. Run options: an optional YAML file with operational knobs, applied with
   the following precedence:
     1. ``RunOptions`` model defaults
     2. YAML configuration file
     3. Command-line overrides
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

import yaml
from pydantic import ValidationError

from sequencer.config_models import ProvisionSettings, RunOptions
from sequencer.errors import MissingConfig

module_logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ProvisionSettings)

SettingsSource = Union[str, Path, Mapping[str, Any]]


def setting_key(schema: Type[ProvisionSettings], field_name: str) -> str:
    """The settings-file key for a schema field (``db_port`` -> ``DB_PORT``)."""
    field = schema.model_fields.get(field_name)
    if field is not None and field.alias:
        return field.alias.upper()
    return field_name.upper()


def required_keys(schema: Type[ProvisionSettings]) -> List[str]:
    """Settings-file keys the schema cannot do without, in declaration order."""
    return [
        setting_key(schema, name)
        for name, field in schema.model_fields.items()
        if field.is_required()
    ]


def _describe_error(error: Dict[str, Any]) -> str:
    error_type = error.get("type", "")
    if error_type == "missing":
        return "not set"
    if error_type == "string_too_short":
        return "empty"
    return str(error.get("msg", "invalid"))


def _missing_config_from(
    exc: ValidationError,
    schema: Type[ProvisionSettings],
    source: str,
) -> MissingConfig:
    missing: List[str] = []
    problems: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("<settings>",)
        key = setting_key(schema, str(loc[0]))
        if key not in problems:
            missing.append(key)
            problems[key] = _describe_error(error)
    return MissingConfig(missing, problems, source=source)


def load_settings(
    source: SettingsSource,
    schema: Type[S],
    current_logger: Optional[logging.Logger] = None,
) -> S:
    """
    Load and validate settings for a run.

    Args:
        source: Path of a ``KEY=value`` settings file (``#`` comment lines
            are ignored) or a mapping of raw key/value pairs.
        schema: The ``ProvisionSettings`` subclass describing required and
            optional settings and their validators.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        A frozen instance of ``schema``.

    Raises:
        MissingConfig: The source does not exist, or one or more required
            settings are absent, empty or invalid. All offending keys are
            named in a single error.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if isinstance(source, Mapping):
        source_label = "<mapping>"
        values = {str(key).lower(): value for key, value in source.items()}
        try:
            settings = schema(**values)
        except ValidationError as e:
            raise _missing_config_from(e, schema, source_label) from e
    else:
        path = Path(source)
        source_label = str(path)
        if not path.is_file():
            keys = required_keys(schema)
            raise MissingConfig(
                keys,
                {key: "settings file not found" for key in keys},
                source=source_label,
            )
        try:
            settings = schema(_env_file=path)
        except ValidationError as e:
            raise _missing_config_from(e, schema, source_label) from e

    logger_to_use.info(
        f"Loaded {len(schema.model_fields)} settings for {schema.__name__} from {source_label}"
    )
    return settings


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively update ``source`` with ``overrides``. Nested dictionaries are
    merged key by key; ``None`` values in ``overrides`` never replace an
    existing value.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def load_run_options(
    config_file_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> RunOptions:
    """
    Load run options with the precedence defaults < YAML file < overrides.

    A missing, unreadable or malformed YAML file is logged and ignored so a
    run can always fall back to defaults and command-line values.

    Args:
        config_file_path: Path to the YAML options file, if any.
        overrides: Values from the command line. ``None`` entries are ignored.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        The resolved ``RunOptions``.
    """
    logger_to_use = current_logger if current_logger else module_logger
    current_values: Dict[str, Any] = RunOptions().model_dump()

    if config_file_path:
        yaml_config_path = Path(config_file_path)
        if yaml_config_path.is_file():
            try:
                with open(yaml_config_path, "r", encoding="utf-8") as f:
                    yaml_data = yaml.safe_load(f)
                if yaml_data and isinstance(yaml_data, dict):
                    current_values = _deep_update(current_values, yaml_data)
                    logger_to_use.info(
                        f"Loaded run options from {yaml_config_path}"
                    )
                elif yaml_data is not None:
                    logger_to_use.warning(
                        f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
                    )
            except yaml.YAMLError as e:
                logger_to_use.warning(
                    f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults."
                )
            except OSError as e:
                logger_to_use.warning(
                    f"Could not read config file '{yaml_config_path}': {e}. Using defaults."
                )
        else:
            logger_to_use.info(
                f"Configuration file '{yaml_config_path}' not found. Using defaults and CLI args."
            )

    if overrides:
        current_values = _deep_update(current_values, dict(overrides))

    return RunOptions(**current_values)
