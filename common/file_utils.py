# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: atomic writes, backups, symlinks, ownership.
"""

import datetime
import grp
import logging
import os
import pwd
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from .command_utils import log_setup

module_logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_text_if_exists(file_path: PathLike) -> Optional[str]:
    """Return the text content of ``file_path`` or None when it is absent."""
    path = Path(file_path)
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


def atomic_write(
    file_path: PathLike,
    content: str,
    mode: Optional[int] = None,
    owner: Optional[str] = None,
    group: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Replace ``file_path`` with ``content`` so that readers only ever see the
    previous file or the complete new one.

    The content goes to a temporary file in the destination directory, is
    flushed to disk, given its mode and ownership, and then renamed over the
    destination. If anything fails the temporary file is removed and the
    destination is left untouched.

    Parameters:
        file_path: Destination path. Its directory must exist.
        content: Full text of the new file.
        mode: Permission bits for the new file. When None, the mode of an
            existing destination is kept, otherwise 0o644.
        owner, group: Optional user and group names for the new file.
        current_logger: Logger to use, defaults to the module logger.

    Raises:
        OSError: The temporary file could not be written or renamed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    destination = Path(file_path)

    if mode is None:
        try:
            mode = destination.stat().st_mode & 0o7777
        except FileNotFoundError:
            mode = 0o644

    fd, temp_path = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as temp_f:
            temp_f.write(content)
            temp_f.flush()
            os.fsync(temp_f.fileno())
        os.chmod(temp_path, mode)
        if owner or group:
            shutil.chown(temp_path, user=owner, group=group)
        os.replace(temp_path, destination)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    log_setup(
        f"Wrote {destination} ({len(content)} bytes, mode {oct(mode)})",
        "debug",
        logger_to_use,
    )


def backup_file(
    file_path: PathLike,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """
    Copy ``file_path`` to a timestamped ``.bak`` sibling.

    Returns:
        The backup path, or None when the source is not a regular file and
        no backup was needed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    source = Path(file_path)
    if not source.is_file():
        log_setup(
            f"File {source} does not exist or is not a regular file. No backup needed.",
            "debug",
            logger_to_use,
        )
        return None

    timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = source.with_name(f"{source.name}.bak.{timestamp}")
    shutil.copy2(source, backup_path)
    log_setup(f"Backed up {source} to {backup_path}", "info", logger_to_use)
    return backup_path


def symlink_points_to(link_path: PathLike, target: PathLike) -> bool:
    """True when ``link_path`` is a symlink whose target is ``target``."""
    link = Path(link_path)
    return link.is_symlink() and os.readlink(link) == str(target)


def ensure_symlink(
    target: PathLike,
    link_path: PathLike,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Point ``link_path`` at ``target``, replacing whatever is at ``link_path``
    (the equivalent of ``ln -sf``). The swap is done with a rename so the
    link never disappears.
    """
    logger_to_use = current_logger if current_logger else module_logger
    link = Path(link_path)
    if link.is_dir() and not link.is_symlink():
        link = link / Path(target).name
    if symlink_points_to(link, target):
        return

    temp_link = link.with_name(f".{link.name}.lnk")
    if temp_link.is_symlink() or temp_link.exists():
        temp_link.unlink()
    os.symlink(str(target), temp_link)
    os.replace(temp_link, link)
    log_setup(f"Linked {link} -> {target}", "info", logger_to_use)


def remove_path(
    file_path: PathLike,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Remove a file, symlink or directory tree if it exists.

    Returns:
        True when something was removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    path = Path(file_path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
    else:
        return False
    log_setup(f"Removed {path}", "info", logger_to_use)
    return True


def path_owned_by(
    file_path: PathLike,
    owner: Optional[str] = None,
    group: Optional[str] = None,
    follow_symlinks: bool = True,
) -> bool:
    """
    True when ``file_path`` exists and has the given owner and/or group.
    """
    path = Path(file_path)
    try:
        st = path.stat() if follow_symlinks else os.lstat(path)
    except FileNotFoundError:
        return False
    try:
        if owner and pwd.getpwuid(st.st_uid).pw_name != owner:
            return False
        if group and grp.getgrgid(st.st_gid).gr_name != group:
            return False
    except KeyError:
        return False
    return True
