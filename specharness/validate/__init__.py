"""Spec and case parsing / validation."""

from specharness.validate.loader import (
    load_cases_file,
    load_spec_file,
    normalize_model_ids,
    parse_cases,
    parse_spec,
    parse_spec_yaml,
)

__all__ = [
    "load_cases_file",
    "load_spec_file",
    "normalize_model_ids",
    "parse_cases",
    "parse_spec",
    "parse_spec_yaml",
]
