"""Variable substitution for property values.

Supports ``${name}`` references to other properties. The referenced value is
itself expanded before being spliced in, so chains of references resolve
fully. References that cannot be resolved, and malformed tokens such as
``${``, ``${}`` or ``{name}``, are left in the output verbatim.

Substitution is a pure function of the value and a lookup callable; the
store supplies a lookup that consults its own properties first and the
process environment second. Results are never written back to the store.

Example:
    ```python
    values = {"host": "db.local", "url": "jdbc://${host}:${port}"}
    substitute(values["url"], values.get)
    # 'jdbc://db.local:${port}'
    ```
"""

import re
from typing import Callable

from .exceptions import SubstitutionError

#: Maximum nesting of substitutions for a single top-level value.
MAX_SUBSTITUTION_DEPTH = 20

VAR_PATTERN = re.compile(r"\$\{([^${}\s]+)\}")

Lookup = Callable[[str], "str | None"]


def substitute(
    value: str | None,
    lookup: Lookup,
    name: str | None = None,
    max_depth: int = MAX_SUBSTITUTION_DEPTH,
) -> str | None:
    """Expand ``${name}`` references in a value.

    Args:
        value: Raw value (None is returned unchanged)
        lookup: Callable returning the raw value for a name, or None
        name: Property being resolved, used in error messages
        max_depth: Maximum substitution nesting

    Returns:
        The expanded value

    Raises:
        SubstitutionError: If expansion nests deeper than max_depth, which
            happens for self-referencing or cyclic values
    """
    if value is None:
        return None
    return _expand(value, lookup, 0, max_depth, value if name is None else name)


def _expand(text: str, lookup: Lookup, depth: int, max_depth: int, label: str) -> str:
    while True:
        if depth > max_depth:
            raise SubstitutionError(
                f"Variable substitution depth too large: {max_depth} {label}",
                context={"key": label, "max_depth": max_depth},
            )

        replaced = False

        def replacer(match: re.Match[str]) -> str:
            nonlocal replaced
            raw = lookup(match.group(1))
            if raw is None:
                return match.group(0)
            replaced = True
            return _expand(raw, lookup, depth + 1, max_depth, label)

        result = VAR_PATTERN.sub(replacer, text)
        if not replaced or result == text:
            return result
        # Substituted text may assemble new references, e.g. ${a${b}}.
        text = result
        depth += 1
