"""Base-pattern extraction and shape-preserving reconstruction."""

from .extractor import align_arrays, completeness_report, extract_pattern, group_input_rows
from .policy import GROWTH, PROPORTIONAL, RECONSTRUCTION_POLICY, ReconstructionRule
from .reconstructor import anchor_value, growth, proportional, reconstruct

__all__ = [
    "align_arrays",
    "anchor_value",
    "completeness_report",
    "extract_pattern",
    "group_input_rows",
    "growth",
    "GROWTH",
    "proportional",
    "PROPORTIONAL",
    "reconstruct",
    "RECONSTRUCTION_POLICY",
    "ReconstructionRule",
]
