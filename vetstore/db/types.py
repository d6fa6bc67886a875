"""Column types shared by the ORM models."""

from __future__ import annotations

import enum

from sqlalchemy import String, types


class EnumString(types.TypeDecorator):
    """Store a ``str`` enum by value in a plain VARCHAR column.

    Avoids dialect enum types so the schema stays portable; unknown values
    read back from disk raise ``ValueError``.
    """

    impl = String(16)
    cache_ok = True

    def __init__(self, enum_class: type[enum.Enum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return self.enum_class(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_class(value)
