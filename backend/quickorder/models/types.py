"""Column types shared by the mirror models."""

import json
from typing import Any

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


def parse_json_text(value: str | None) -> Any:
    """Parse a JSON column value, keeping the raw string when it is not valid JSON."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return value


class JSONText(TypeDecorator):
    """Structured value stored as serialized JSON in a TEXT column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False, sort_keys=True)

    def process_result_value(self, value: str | None, dialect) -> Any:
        return parse_json_text(value)
