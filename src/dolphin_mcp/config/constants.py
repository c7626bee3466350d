"""Configuration constants.

This module contains values that are NOT user-configurable (protocol limits,
parameter bounds) plus the defaults that models.py builds on.

For configurable values, see models.py (SnippetsConfig, PayloadConfig, etc.).
"""

# =============================================================================
# Response Budget Defaults
# =============================================================================
# Serialized tool results must fit host transport limits. Tunable via config.

RESPONSE_BUDGET_BYTES = 70 * 1024
"""Default byte budget for one serialized search result."""

SNIPPET_CHAR_CAP = 600
"""First shrink pass: per-resource character cap."""

SNIPPET_CHAR_FLOOR = 300
"""Second shrink pass: per-resource character floor."""

PROMPT_READY_SHRINK_RATIO = 0.9
"""Prompt-ready text is cut to this fraction of its length per step."""

# =============================================================================
# Snippet Fetch Bounds
# =============================================================================
# Out-of-range values are clamped into these bounds, never rejected.

SNIPPET_CONCURRENCY_MIN = 1
SNIPPET_CONCURRENCY_DEFAULT = 8
SNIPPET_CONCURRENCY_MAX = 12

SNIPPET_TIMEOUT_MS_MIN = 500
SNIPPET_TIMEOUT_MS_DEFAULT = 1500
SNIPPET_TIMEOUT_MS_MAX = 10_000

SNIPPET_RETRIES_MIN = 0
SNIPPET_RETRIES_DEFAULT = 1
SNIPPET_RETRIES_MAX = 3

SNIPPET_BACKOFF_BASE_MS = 100
"""Backoff before retry n is BASE * 2**n milliseconds."""

SNIPPET_FAILURE_WARNING = "Failed to load snippet"
"""Warning attached to a snippet slot whose fetch failed."""

# =============================================================================
# Tool Parameter Bounds
# =============================================================================

SEARCH_TOP_K_MAX = 100
CONTEXT_LINES_MAX = 10
DEADLINE_MS_MIN = 50
ANN_NPROBES_MAX = 50
ANN_REFINE_FACTOR_MAX = 100

READ_FILES_MAX_PATHS = 20
"""Maximum paths per read_files call."""

READ_FILES_MAX_BYTES = 1024 * 1024
"""Default per-file byte limit for read_files."""

# =============================================================================
# Vector Store Facts
# =============================================================================
# Reported by get_vector_store_info; fixed by the upstream index layout.

VECTOR_NAMESPACES = ("chunks_small", "chunks_large")
VECTOR_DIMS = {"chunks_small": 1536, "chunks_large": 3072}
VECTOR_TOP_K_MAX = 20
VECTOR_SNIPPET_TOKENS_CAP = 500

# =============================================================================
# Misc
# =============================================================================

REPO_CACHE_TTL_SEC = 300.0
"""Default lifetime of the cached /repos listing."""

RESOURCE_URI_SCHEME = "kb"
"""Scheme for resource block URIs (kb://repo/path#Ls-Le)."""
