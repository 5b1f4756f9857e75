"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
"""

from __future__ import annotations

# ── Metadata ─────────────────────────────────────────────

# Description used when a class carries no @description
UNDOCUMENTED = "Not documented!!!"

# Attribute names the decorators in pkgcite.annotations write to
CITATIONS_ATTR = "__citations__"
DESCRIPTION_ATTR = "__description__"

# ── Package Layout ───────────────────────────────────────

PACKAGE_MANIFEST = "package.json"
PACKAGE_LIB_DIR = "lib"
MODULE_SUFFIX = ".py"
PACKAGE_INIT = "__init__"

# Archive entries with these prefixes are never imported: test fixtures
# and two third-party namespaces that break when loaded twice.
SKIP_ENTRY_PREFIXES = ("test", "cern", "com")

DEFAULT_ARTIFACT_PATTERNS = ("*.whl", "*.zip", "*.egg", "!*src.zip")

# Packages kept resolvable for the whole run
CORE_PACKAGES = ("beast2", "beast")

DEFAULT_MARKER_CLASS = "pkgcite.annotations:ModelObject"

# ── Report Formatting ────────────────────────────────────

TAB = "\t"
DOI_MAPPING_SEPARATOR = ", "

NO_CONNECTION_MESSAGE = (
    "Could not access the package index. "
    "Check the network connection or the proxy settings."
)

# ── CrossRef ─────────────────────────────────────────────

CROSSREF_WORKS_URL = "https://api.crossref.org/works"
LOOKUP_PAUSE_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 30.0

# ── Circuit Breaker Configuration ────────────────────────

CB_LOOKUP_FAILURE_THRESHOLD = 5
CB_LOOKUP_RECOVERY_TIMEOUT = 60

# ── Export ───────────────────────────────────────────────

JSON_INDENT = 2
