# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from sequencer.config_models import SYMBOLS_DEFAULT, RunOptions

module_logger = logging.getLogger(__name__)


def get_symbols(options: Optional[RunOptions]) -> Dict[str, str]:
    """Return the log symbols of ``options``, or the defaults."""
    if options is not None and options.symbols:
        return options.symbols
    return SYMBOLS_DEFAULT


def log_setup(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a message for the provisioning run at the named level.

    Args:
        message (str): The log message to be recorded.
        level (str): "debug", "info", "success", "warning", "error" or
            "critical". Unknown levels and "success" are logged as info.
        current_logger (Optional[logging.Logger]): Logger to use. Defaults to
            the module logger.
        exc_info (bool): Include exception information in the record.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def command_error_text(error: BaseException) -> str:
    """
    Return the external error text carried by ``error``, verbatim.

    For a failed process this is its stderr (or stdout when stderr is
    empty) together with the exit status, otherwise ``str(error)``.
    """
    if isinstance(error, subprocess.CalledProcessError):
        cmd = (
            subprocess.list2cmdline(error.cmd)
            if isinstance(error.cmd, list)
            else str(error.cmd)
        )
        output = error.stderr or error.output or ""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        output = output.strip()
        text = f"`{cmd}` exited with status {error.returncode}"
        return f"{text}: {output}" if output else text
    if isinstance(error, subprocess.TimeoutExpired):
        cmd = (
            subprocess.list2cmdline(error.cmd)
            if isinstance(error.cmd, list)
            else str(error.cmd)
        )
        return f"`{cmd}` timed out after {error.timeout} seconds"
    if isinstance(error, FileNotFoundError) and error.filename:
        return f"command not found: {error.filename}"
    return str(error) or error.__class__.__name__


def _get_elevated_command_prefix() -> List[str]:
    """
    Return ``["sudo"]`` when the process is not running as root.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def run_command(
    command: Union[List[str], str],
    options: Optional[RunOptions] = None,
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the command and its results.

    Args:
        command: The command, preferably as a list of arguments. A string is
            split on whitespace unless ``shell`` is True.
        options: Run options; supplies log symbols and the default timeout.
        check: Raise ``CalledProcessError`` on a non-zero exit status.
        shell: Run the command through the shell.
        capture_output: Capture stdout and stderr.
        text: Decode the output streams as text.
        cmd_input: Data written to the command's standard input.
        current_logger: Logger to use, defaults to the module logger.
        cwd: Working directory for the command.
        env: Complete environment for the command. Inherited when None.
        timeout: Seconds before the command is killed. Falls back to
            ``options.command_timeout``.

    Returns:
        subprocess.CompletedProcess: The finished process.

    Raises:
        subprocess.CalledProcessError: Non-zero exit and ``check`` is True.
        subprocess.TimeoutExpired: The command exceeded its timeout.
        FileNotFoundError: The executable does not exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(options)
    if timeout is None and options is not None:
        timeout = options.command_timeout

    command_to_run: Union[List[str], str]
    if shell:
        command_to_run = (
            " ".join(command) if isinstance(command, list) else command
        )
        command_to_log_str = str(command_to_run)
    elif isinstance(command, str):
        log_setup(
            f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
            "warning",
            effective_logger,
        )
        command_to_run = command.split()
        command_to_log_str = command
    else:
        command_to_run = list(command)
        command_to_log_str = subprocess.list2cmdline(command_to_run)

    log_setup(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}".rstrip(),
        "info",
        effective_logger,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
            timeout=timeout,
        )
        if capture_output:
            if result.stdout and result.stdout.strip():
                log_setup(
                    f"   stdout: {result.stdout.strip()}",
                    "debug",
                    effective_logger,
                )
            if result.stderr and result.stderr.strip():
                log_setup(
                    f"   stderr: {result.stderr.strip()}",
                    "debug",
                    effective_logger,
                )
        return result
    except subprocess.CalledProcessError as e:
        log_setup(
            f"{symbols.get('error', '❌')} Command `{command_to_log_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
        )
        if e.stdout and hasattr(e.stdout, "strip") and e.stdout.strip():
            log_setup(
                f"   stdout: {e.stdout.strip()}", "error", effective_logger
            )
        if e.stderr and hasattr(e.stderr, "strip") and e.stderr.strip():
            log_setup(
                f"   stderr: {e.stderr.strip()}", "error", effective_logger
            )
        raise
    except subprocess.TimeoutExpired:
        log_setup(
            f"{symbols.get('error', '❌')} Command `{command_to_log_str}` timed out after {timeout} seconds.",
            "error",
            effective_logger,
        )
        raise
    except FileNotFoundError as e:
        log_setup(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
        )
        raise


def run_elevated_command(
    command: List[str],
    options: Optional[RunOptions] = None,
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with root privileges, prefixing ``sudo`` when the
    current process is not already root. See ``run_command`` for arguments.
    """
    prefix = _get_elevated_command_prefix()
    return run_command(
        prefix + list(command),
        options,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=True,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
        timeout=timeout,
    )


def command_exists(command_name: str) -> bool:
    """
    Check if a command exists in the system's PATH.
    """
    return shutil.which(command_name) is not None

