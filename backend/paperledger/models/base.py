from __future__ import annotations

from dataclasses import fields
from decimal import Decimal


ZERO = Decimal("0")


def encode_value(value):
    """Convert a record attribute into its JSON-safe form (Decimals become strings)."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, LedgerRecord):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    return value


class LedgerRecord:
    """
    Mixin for the dataclass records kept in ledger collections.

    Subclasses list their money/quantity attributes in ``decimal_fields`` so
    they survive the JSON round trip as exact Decimals. A subclass with an
    ``extra`` dict field collects any unknown keys into it instead of
    dropping them.
    """

    decimal_fields = ()

    def to_dict(self) -> dict:
        return {f.name: encode_value(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict):
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} record must be an object, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        kwargs = {}
        unknown = {}
        for key, value in data.items():
            if key in known:
                kwargs[key] = value
            else:
                unknown[key] = value

        if "extra" in known:
            merged = dict(kwargs.get("extra") or {})
            merged.update(unknown)
            kwargs["extra"] = merged

        for name in cls.decimal_fields:
            if kwargs.get(name) is not None:
                kwargs[name] = Decimal(str(kwargs[name]))

        return cls(**kwargs)
