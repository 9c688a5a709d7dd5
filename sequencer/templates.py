# sequencer/templates.py
# -*- coding: utf-8 -*-
"""
Configuration templates and their rendering.

Templates use ``str.format`` named placeholders (``{radius_db_user}``);
literal braces in the target syntax are doubled (``{{``). Rendering is a pure
function of the template and its bindings and fails with
``UnresolvedPlaceholder`` rather than emitting text with unreplaced tokens.
Writing the rendered text to disk is a separate step action, see
``common.file_utils.atomic_write``.
"""

import string
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Set, Union

from sequencer.errors import UnresolvedPlaceholder

TEMPLATE_SUFFIX = ".tmpl"


def _collect_placeholders(text: str, found: Set[str]) -> None:
    for _, field_name, format_spec, _ in string.Formatter().parse(text):
        if field_name is None:
            continue
        if not field_name.isidentifier():
            raise ValueError(
                f"Unsupported placeholder '{{{field_name}}}': placeholders must be plain names"
            )
        found.add(field_name)
        if format_spec:
            _collect_placeholders(format_spec, found)


@dataclass(frozen=True)
class Template:
    """A named piece of text with named placeholders."""

    name: str
    text: str

    @property
    def placeholders(self) -> FrozenSet[str]:
        """
        The declared placeholder set.

        Raises:
            ValueError: The text is malformed (unbalanced braces) or uses
                positional, attribute or index placeholders.
        """
        found: Set[str] = set()
        _collect_placeholders(self.text, found)
        return frozenset(found)

    @classmethod
    def from_file(
        cls, path: Union[str, Path], name: Optional[str] = None
    ) -> "Template":
        template_path = Path(path)
        template_name = name
        if template_name is None:
            template_name = template_path.name
            if template_name.endswith(TEMPLATE_SUFFIX):
                template_name = template_name[: -len(TEMPLATE_SUFFIX)]
        return cls(template_name, template_path.read_text(encoding="utf-8"))


def render(template: Template, bindings: Mapping[str, Any]) -> str:
    """
    Substitute ``bindings`` into ``template``.

    Bindings that the template does not use are ignored.

    Raises:
        UnresolvedPlaceholder: Some placeholders have no binding. All of
            them are named in the error.
    """
    unresolved = template.placeholders - set(bindings)
    if unresolved:
        raise UnresolvedPlaceholder(template.name, unresolved)
    return template.text.format_map(dict(bindings))


class TemplateLibrary:
    """
    Loads ``<name>.tmpl`` files from a directory, letting files in an
    optional override directory take precedence.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        override_dir: Optional[Union[str, Path]] = None,
    ):
        self.directory = Path(directory)
        self.override_dir = Path(override_dir) if override_dir else None
        self._cache: Dict[str, Template] = {}

    def path_for(self, name: str) -> Path:
        filename = f"{name}{TEMPLATE_SUFFIX}"
        if self.override_dir is not None:
            candidate = self.override_dir / filename
            if candidate.is_file():
                return candidate
        return self.directory / filename

    def get(self, name: str) -> Template:
        """
        Raises:
            FileNotFoundError: No template file with that name exists.
        """
        if name not in self._cache:
            path = self.path_for(name)
            if not path.is_file():
                raise FileNotFoundError(
                    f"Template '{name}' not found at {path}"
                )
            self._cache[name] = Template.from_file(path, name=name)
        return self._cache[name]


def sql_literal(value: Any) -> str:
    """Escape ``value`` for use inside a single-quoted MySQL string literal."""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def sql_identifier(value: Any) -> str:
    """Quote ``value`` as a MySQL identifier (database, table or user name)."""
    return "`" + str(value).replace("`", "``") + "`"


def sql_bindings(bindings: Mapping[str, Any]) -> Dict[str, str]:
    """Apply ``sql_literal`` to every binding value."""
    return {key: sql_literal(value) for key, value in bindings.items()}
