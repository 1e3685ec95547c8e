"""Identifier sanitization for table and column names."""

import re
from typing import Iterable, List, Optional

from shared.logger import get_logger

logger = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


class DuplicateIdentifierError(ValueError):
    """Two headers sanitize to the same identifier and suffixing is disabled."""


def sanitize_identifier(name: str) -> str:
    """
    Strip every non-alphanumeric character and lowercase.

    Lossy: "Order Date" and "order_date" both become "orderdate".
    """
    return _NON_ALNUM.sub("", name).lower()


def table_name_for(stem: str) -> str:
    """
    Table identifier for a workbook file stem (may be empty).

    An all-digit result gets a ``tbl`` prefix, like numeric column headers.
    """
    name = sanitize_identifier(stem)
    if name.isdigit():
        return f"tbl{name}"
    return name


def identity_column(table_name: str) -> str:
    """Name of the synthetic auto-increment key column."""
    return f"{table_name}_id"


def unique_column_names(
    headers: Iterable[str],
    reserved: Optional[Iterable[str]] = None,
    suffix_duplicates: bool = True,
) -> List[str]:
    """
    Sanitize headers into unique column identifiers.

    Blank headers become ``col<position>`` (1-based) and all-digit results
    get a ``col`` prefix, since MySQL rejects unquoted numeric identifiers.
    Collisions are suffixed ``_2``, ``_3``, ... in header order.

    Args:
        headers: Raw header cells
        reserved: Names already taken (e.g. the identity column)
        suffix_duplicates: Raise instead of suffixing when False

    Returns:
        One identifier per header, same order

    Raises:
        DuplicateIdentifierError: On collision when suffixing is disabled
    """
    taken = set(reserved or ())
    names = []

    for position, header in enumerate(headers, start=1):
        base = sanitize_identifier(header)
        if not base:
            base = f"col{position}"
        elif base.isdigit():
            base = f"col{base}"

        name = base
        if name in taken:
            if not suffix_duplicates:
                raise DuplicateIdentifierError(
                    f"Column {header!r} sanitizes to {base!r}, which is already used"
                )
            counter = 2
            while f"{base}_{counter}" in taken:
                counter += 1
            name = f"{base}_{counter}"
            logger.debug(f"Renamed duplicate column {header!r} to {name}")

        taken.add(name)
        names.append(name)

    return names
