"""Fixings data module."""

from .fixings import (
    CurrencyPair,
    ManualAnnotation,
    ManualFixingBook,
    WindowKey,
    build_effective_series,
    load_annotations,
    load_series,
    parse_pair,
    parse_window,
    select_window,
)

__all__ = [
    "CurrencyPair",
    "ManualAnnotation",
    "ManualFixingBook",
    "WindowKey",
    "build_effective_series",
    "load_annotations",
    "load_series",
    "parse_pair",
    "parse_window",
    "select_window",
]
