"""Fingerprint comparison and near-duplicate grouping."""

from .model import deduplicate_files, match_files
from .cluster import DedupGroup, find_duplicate_groups, format_groups, format_groups_oneline
from .distance import channel_distance, hamming_distance, similarity

__all__ = [
    "deduplicate_files",
    "match_files",
    "DedupGroup",
    "find_duplicate_groups",
    "format_groups",
    "format_groups_oneline",
    "channel_distance",
    "hamming_distance",
    "similarity",
]
