"""
Record Normalization

Converts symbolic record fields (``type``, ``class``) into their numeric
protocol codes so that patterns and questions compare numerically.
"""

from typing import Any, Dict, List, Mapping

import dns.exception
import dns.rdataclass
import dns.rdatatype

from .errors import IllegalMultivalueError, UnknownSymbolError
from .message import Question

# Fields whose symbolic values are looked up, and the tables used for them
LOOKUP_TABLES = {
    "type": dns.rdatatype.RdataType,
    "class": dns.rdataclass.RdataClass,
}


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def normalize_value(key: str, value: Any) -> Any:
    """Normalize a single value of field ``key``"""
    table = LOOKUP_TABLES.get(key)
    if table is None or not isinstance(value, str):
        return value

    text = value.strip()
    if text.isascii() and text.isdigit():
        return int(text)

    try:
        return int(table.from_text(text))
    except (dns.exception.DNSException, ValueError):
        raise UnknownSymbolError(key, value) from None


def normalize_record(record: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Normalize every field of ``record`` into a list of values.

    Args:
        record: Mapping of field name to a value or a list of values

    Returns:
        New dictionary with the same keys, each mapped to a list

    Raises:
        UnknownSymbolError: If a type/class symbol has no numeric code
    """
    return {
        key: [normalize_value(key, v) for v in _as_list(value)]
        for key, value in record.items()
    }


def finalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize ``record`` and collapse each field to at most one value.

    Empty lists drop the field, single-element lists become the element.

    Raises:
        UnknownSymbolError: If a type/class symbol has no numeric code
        IllegalMultivalueError: If a field carries more than one value
    """
    result = {}
    for key, values in normalize_record(record).items():
        if not values:
            continue
        if len(values) > 1:
            raise IllegalMultivalueError(key, values)
        result[key] = values[0]
    return result


def make_question(record: Mapping[str, Any]) -> Question:
    """Build a Question from a question-like mapping (name, type, class)"""
    fields = finalize_record(record)
    if "name" not in fields:
        raise ValueError("Question requires a name")

    name = str(fields["name"])
    if name != ".":
        name = name.rstrip(".")

    return Question(
        name=name,
        qtype=int(fields.get("type", dns.rdatatype.A)),
        qclass=int(fields.get("class", dns.rdataclass.IN)),
    )
