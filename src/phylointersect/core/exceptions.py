"""
Custom exceptions with actionable guidance.

Provides specific error types for common failure scenarios,
each with helpful suggestions for resolution.
"""

from __future__ import annotations


class PhyloIntersectError(Exception):
    """Base exception for phylointersect errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class TaxonomyIndexError(PhyloIntersectError):
    """Base class for taxonomy index errors."""


class TaxonomyIndexNotFoundError(TaxonomyIndexError):
    """Raised when the taxonomy index file does not exist."""

    def __init__(self, path: str):
        super().__init__(
            message=f"Taxonomy index not found: {path}",
            suggestion=(
                "Build the index from an NCBI taxdump first:\n"
                "  phylointersect taxonomy build --nodes nodes.dmp "
                "--names names.dmp --output taxonomy.sqlite"
            ),
        )
        self.path = path


class CorruptTaxonomyIndexError(TaxonomyIndexError):
    """Raised when the taxonomy index cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Taxonomy index '{path}' is unreadable: {reason}",
            suggestion=(
                "Rebuild the index with 'phylointersect taxonomy build'. "
                "The file must contain 'nodes' and 'names' tables."
            ),
        )
        self.path = path


class TaxonomyDumpError(TaxonomyIndexError):
    """Raised when nodes.dmp or names.dmp cannot be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Cannot parse taxonomy dump '{path}': {reason}",
            suggestion=(
                "Download a fresh taxdump from "
                "https://ftp.ncbi.nlm.nih.gov/pub/taxonomy/taxdump.tar.gz "
                "and pass the extracted nodes.dmp and names.dmp files."
            ),
        )
        self.path = path


class ManifestError(PhyloIntersectError):
    """Base class for read manifest errors."""


class EmptyManifestError(ManifestError):
    """Raised when the read manifest lists no reads."""

    def __init__(self, path: str):
        super().__init__(
            message=f"Read manifest is empty: {path}",
            suggestion=(
                "The manifest needs one 'read_id<TAB>read_length' line per read. "
                "Check that the header extraction step produced output."
            ),
        )


class MalformedManifestError(ManifestError):
    """Raised when a manifest line cannot be parsed."""

    def __init__(self, path: str, line_num: int, line: str):
        super().__init__(
            message=(
                f"Malformed read manifest '{path}' at line {line_num}: {line!r}"
            ),
            suggestion=(
                "Each line must contain a read ID and a positive integer read "
                "length separated by a tab."
            ),
        )
        self.line_num = line_num


class HitFileError(PhyloIntersectError):
    """Base class for alignment hit file errors."""


class MalformedHitLineError(HitFileError):
    """Raised when a hit line is malformed and strict parsing is enabled."""

    def __init__(self, path: str, line_num: int, reason: str):
        super().__init__(
            message=f"Malformed hit file '{path}' at line {line_num}: {reason}",
            suggestion=(
                "Hits must be BLAST tabular output with a taxonomy column:\n"
                "  blastn ... -outfmt '6 std staxids'\n\n"
                "That gives 13 tab-separated columns with the E-value in "
                "column 11 and the taxon ID in column 13."
            ),
        )
        self.line_num = line_num


class ConfigurationError(PhyloIntersectError):
    """Raised when configuration is invalid."""


class InvalidThresholdError(ConfigurationError):
    """Raised when a threshold parameter is out of valid range."""

    def __init__(self, param_name: str, value: float, min_val: float, max_val: float):
        super().__init__(
            message=f"{param_name} = {value} is out of valid range [{min_val}, {max_val}]",
            suggestion=f"Set {param_name} to a value between {min_val} and {max_val}.",
        )
