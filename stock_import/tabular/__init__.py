"""CSV parsing, field normalization and validation."""

from .field_map import DEFAULT_SYNONYMS, HeaderSynonyms
from .normalizer import normalize
from .parser import parse
from .template import TEMPLATE_HEADER, csv_template
from .validator import NoValidRowsError, build_batch, normalize_and_validate, validate

__all__ = [
    "DEFAULT_SYNONYMS",
    "HeaderSynonyms",
    "parse",
    "normalize",
    "validate",
    "normalize_and_validate",
    "build_batch",
    "NoValidRowsError",
    "TEMPLATE_HEADER",
    "csv_template",
]
