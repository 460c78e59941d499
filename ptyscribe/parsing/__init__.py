"""Stream parsing: control-sequence normalization and marker delimiters."""

from ptyscribe.parsing.markers import DisplayMarkerFilter, strip_markers  # noqa: F401
from ptyscribe.parsing.normalizer import StreamNormalizer, normalize  # noqa: F401

__all__ = ["DisplayMarkerFilter", "StreamNormalizer", "normalize", "strip_markers"]
