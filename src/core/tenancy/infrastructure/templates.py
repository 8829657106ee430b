"""DDL templates for the shared namespace and per-school namespaces.

A template is a DDL document with a single substitution token,
``{SCHEMA_NAME}``, that may occur any number of times. Rendering is pure:
the same template and namespace always produce the same DDL.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from shared_kernel.identifiers import SafeIdentifier
from tenancy.ports.exceptions import TemplateNotFoundError

PLACEHOLDER = "{SCHEMA_NAME}"
PUBLIC_TEMPLATE = "public_schema.sql"
SCHOOL_TEMPLATE = "school_schema.sql"

_VERSION_HEADER = re.compile(r"^--\s*version:\s*(\S+)", re.MULTILINE)
_CREATE_TABLE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    + re.escape(PLACEHOLDER)
    + r"\.\"?([A-Za-z_][A-Za-z0-9_]*)\"?",
    re.IGNORECASE,
)
_DOLLAR_TAG = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")


@dataclass(frozen=True)
class SchemaTemplate:
    """A parameterized DDL document."""

    name: str
    text: str
    version: str = field(init=False)

    def __post_init__(self) -> None:
        if PLACEHOLDER not in self.text:
            raise ValueError(f"Template {self.name} has no {PLACEHOLDER} token")
        match = _VERSION_HEADER.search(self.text)
        object.__setattr__(self, "version", match.group(1) if match else "unversioned")

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    def render(self, namespace: str | SafeIdentifier) -> str:
        """Substitute the namespace into the template.

        Raises:
            InvalidIdentifier: If the namespace is not a safe identifier.
        """
        identifier = SafeIdentifier.of(namespace)
        return self.text.replace(PLACEHOLDER, identifier.value)

    def defined_tables(self) -> list[str]:
        """Names of tables the template creates, in declaration order."""
        seen: list[str] = []
        for match in _CREATE_TABLE.finditer(self.text):
            table = match.group(1).lower()
            if table not in seen:
                seen.append(table)
        return seen

    @classmethod
    def from_file(cls, path: Path) -> SchemaTemplate:
        """Load a template from a file.

        Raises:
            TemplateNotFoundError: If the file does not exist or is unreadable.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFoundError(f"Cannot read template {path}: {e}") from e
        return cls(name=path.name, text=text)


def load_template(name: str, template_dir: Path | None = None) -> SchemaTemplate:
    """Load a template by file name.

    Args:
        name: Template file name, e.g. ``school_schema.sql``
        template_dir: Directory overriding the packaged templates

    Raises:
        TemplateNotFoundError: If the template cannot be found.
    """
    if template_dir is not None:
        return SchemaTemplate.from_file(template_dir / name)

    resource = resources.files("tenancy.templates").joinpath(name)
    try:
        text = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError) as e:
        raise TemplateNotFoundError(f"Packaged template {name} not found") from e
    return SchemaTemplate(name=name, text=text)


def split_statements(script: str) -> list[str]:
    """Split a DDL script into individual statements.

    Semicolons inside single-quoted strings, double-quoted identifiers,
    dollar-quoted bodies and comments do not terminate a statement.
    Statements that are empty or consist only of comments are dropped.
    """
    statements: list[str] = []
    current: list[str] = []
    has_code = False
    i = 0
    length = len(script)

    while i < length:
        char = script[i]

        if script.startswith("--", i):
            end = script.find("\n", i)
            end = length if end == -1 else end
            current.append(script[i:end])
            i = end
            continue

        if script.startswith("/*", i):
            end = script.find("*/", i + 2)
            end = length if end == -1 else end + 2
            current.append(script[i:end])
            i = end
            continue

        if char in ("'", '"'):
            end = i + 1
            while end < length:
                if script[end] == char:
                    # doubled quote is an escaped quote
                    if end + 1 < length and script[end + 1] == char:
                        end += 2
                        continue
                    break
                end += 1
            end = min(end + 1, length)
            current.append(script[i:end])
            has_code = True
            i = end
            continue

        if char == "$":
            tag = _DOLLAR_TAG.match(script, i)
            if tag:
                delimiter = tag.group(0)
                close = script.find(delimiter, tag.end())
                end = length if close == -1 else close + len(delimiter)
                current.append(script[i:end])
                has_code = True
                i = end
                continue

        if char == ";":
            if has_code:
                statements.append("".join(current).strip())
            current = []
            has_code = False
            i += 1
            continue

        if not char.isspace():
            has_code = True
        current.append(char)
        i += 1

    if has_code:
        statements.append("".join(current).strip())
    return statements
