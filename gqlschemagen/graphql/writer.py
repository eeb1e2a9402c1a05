"""
Output writer with preserved keep regions.

Content between the keep markers of an existing file is captured and put
back at the configured placement, so hand-written schema additions survive
regeneration. Files whose content did not change are left untouched.
"""

import os
import re
from typing import Dict, List, Optional

from ..core.config import GeneratorConfig
from ..core.generator import GeneratorError, GenerationResult
from ..logging_config import get_logger

logger = get_logger(__name__)

HEADER = (
    "# Code generated by gqlschemagen. DO NOT EDIT.\n"
    "# Custom content placed between the keep markers is preserved on regeneration."
)

PLACEHOLDER = (
    "# You can add custom types or comments here and they will be preserved "
    "during code generation."
)


class OutputError(GeneratorError):
    """Raised when an output file cannot be read or written."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class SchemaWriter:
    """Writes rendered schema files, merging keep regions."""

    def __init__(self, config: GeneratorConfig):
        self.begin = config.keep_begin_marker
        self.end = config.keep_end_marker
        self.placement = config.keep_section_placement
        self.skip_existing = config.skip_existing
        self._keep_pattern = re.compile(re.escape(self.begin) + "(.*?)" + re.escape(self.end), re.DOTALL)

    def extract_sections(self, content: str) -> List[str]:
        """Inner text of every keep region, in file order."""
        return self._keep_pattern.findall(content)

    def check_markers(self, content: str, path: str) -> None:
        """
        Reject content whose keep markers do not pair up.

        Raises:
            OutputError: If a begin or end marker is left unmatched
        """
        leftover = self._keep_pattern.sub("", content)
        for marker in (self.begin, self.end):
            if marker in leftover:
                raise OutputError(f"unbalanced keep markers, unmatched '{marker}'", path)

    def keep_region(self, sections: List[str]) -> str:
        if sections:
            return self.begin + "\n".join(sections) + self.end
        return f"{self.begin}\n{PLACEHOLDER}\n{self.end}"

    def compose(self, body: str, existing: Optional[str] = None) -> str:
        """
        Build the final file content.

        Args:
            body: Rendered schema text
            existing: Current file content, if the file exists

        Returns:
            Header, generated body and keep region in the configured order
        """
        sections = self.extract_sections(existing) if existing else []
        keep = self.keep_region(sections)
        if self.placement == "start":
            return f"{HEADER}\n\n{keep}\n\n{body}\n"
        return f"{HEADER}\n\n{body}\n\n{keep}\n"

    @staticmethod
    def _read(path: str) -> Optional[str]:
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise OutputError(f"cannot read existing file: {e}", path)

    def write_file(self, path: str, body: str, result: GenerationResult) -> None:
        """
        Write one file unless it is skipped or unchanged.

        Raises:
            OutputError: If the file cannot be read or written, or its keep
                markers are unbalanced
        """
        if self.skip_existing and os.path.exists(path):
            logger.info("Skipping existing file %s", path)
            result.skipped.append(path)
            return

        existing = self._read(path)
        if existing:
            self.check_markers(existing, path)
        content = self.compose(body, existing)
        if existing == content:
            logger.debug("Unchanged %s", path)
            result.unchanged.append(path)
            return

        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
        except OSError as e:
            raise OutputError(f"cannot write file: {e}", path)

        logger.info("Wrote %s", path)
        result.written.append(path)

    def write_all(self, files: Dict[str, str], result: GenerationResult) -> GenerationResult:
        """Write every rendered file in sorted path order."""
        for path in sorted(files):
            self.write_file(path, files[path], result)
        return result
