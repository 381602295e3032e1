"""
Constants used throughout the phylointersect package.

Centralizes magic strings, default values, and field positions so the
engine, the writers, and the summary step agree on them.
"""

from __future__ import annotations

# =============================================================================
# Taxonomy Constants
# =============================================================================

# Root of the NCBI taxonomy tree (self-parent)
ROOT_TAXID = 1

# Placeholder ID meaning "no identification"; never looked up
NO_TAXID = 0

# Marker written by BLAST when a subject has no taxonomy ID
NOT_AVAILABLE = "N/A"

# Display name used whenever a taxon or intersection cannot be named
NONE_FOUND = "none found"

# Upper bound on parent-link hops while resolving a lineage.
# NCBI lineages are well under 100 nodes deep.
MAX_LINEAGE_DEPTH = 1000

# =============================================================================
# Classification Defaults
# =============================================================================

# Maximum distinct taxa examined per read; denominator of the diversity score
DEFAULT_CAP = 100

# Minimum percentage of the read a top hit must cover
DEFAULT_MIN_COVERAGE_PERCENT = 95.0

# Minimum diversity score for a read to reach the basic summary
DEFAULT_MIN_DIVERSITY_SCORE = 0.1

# =============================================================================
# Hit Line Layout (BLAST -outfmt "6 std staxids")
# =============================================================================

HIT_FIELD_QUERY = 0
HIT_FIELD_SUBJECT = 1
HIT_FIELD_IDENTITY = 2
HIT_FIELD_LENGTH = 3
HIT_FIELD_EVALUE = 10
HIT_FIELD_BITSCORE = 11
HIT_FIELD_TAXID = 12

# Minimum number of tab-separated fields in a usable hit line
HIT_MIN_FIELDS = HIT_FIELD_TAXID + 1

BLAST_OUTFMT = "6 std staxids"

# =============================================================================
# Output Naming
# =============================================================================

OUTPUT_DIR_SUFFIX = "_out"
INTERSECTS_SUFFIX = ".intersects.txt"
SUMMARY_BASIC_SUFFIX = "_Summary_Basic.txt"
RUN_LOG_SUFFIX = "_phylointersect_log.txt"
