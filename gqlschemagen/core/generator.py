"""
Base error type and result container for schema generation.

Every fatal failure of the pipeline derives from GeneratorError so that
callers can stop on a single exception type.
"""

from typing import Dict, List, Any, Optional


class GeneratorError(Exception):
    """Base exception for schema generation errors."""

    pass


def format_code(code: str) -> str:
    """
    Normalize whitespace of generated schema text.

    Args:
        code: Raw generated text

    Returns:
        Text with trailing whitespace removed and at most one blank line
        between blocks
    """
    lines = code.split("\n")
    formatted_lines = []
    blank_count = 0

    for line in lines:
        stripped = line.rstrip()
        if not stripped:
            blank_count += 1
            if blank_count <= 1:
                formatted_lines.append("")
        else:
            blank_count = 0
            formatted_lines.append(stripped)

    return "\n".join(formatted_lines).strip("\n")


class GenerationResult:
    """Container for generation results and metadata."""

    def __init__(
        self,
        written: List[str] = None,
        unchanged: List[str] = None,
        skipped: List[str] = None,
        warnings: List[str] = None,
        metadata: Dict[str, Any] = None,
    ):
        """
        Initialize generation result.

        Args:
            written: Files whose content was created or changed
            unchanged: Files regenerated with identical content
            skipped: Existing files left alone because of skip_existing
            warnings: Non-fatal notes collected during generation
            metadata: Counts and settings of the run
        """
        self.written = written or []
        self.unchanged = unchanged or []
        self.skipped = skipped or []
        self.warnings = warnings or []
        self.metadata = metadata or {}
        self.success = True
        self.error_message: Optional[str] = None
        self.exception: Optional[Exception] = None

    @property
    def files(self) -> List[str]:
        """All files produced by the run, written or not."""
        return sorted(self.written + self.unchanged + self.skipped)

    @classmethod
    def error(cls, message: str, exception: Exception = None) -> "GenerationResult":
        """Create a failed generation result."""
        result = cls()
        result.success = False
        result.error_message = message
        result.exception = exception
        return result
