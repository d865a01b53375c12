"""Idempotent edits of line-oriented nginx and ModSecurity config files."""

import logging
import re
from typing import List, Optional, Tuple

from core.models.patch_directive import InsertionPoint, PatchDirective, Substitution
from infrastructure.storage.file_storage import FileStorage


class TextPatchService:
    """Applies check-then-insert directives and literal substitutions.

    Files are pattern-matched only; nothing here parses the directive
    language.
    """

    def __init__(self, file_storage: FileStorage):
        self.file_storage = file_storage
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _as_lines(content: str) -> str:
        return content.rstrip("\n") + "\n"

    def _insert_block_start(self, text: str, directive: PatchDirective) -> str:
        opening = re.compile(rf"^\s*{re.escape(directive.block_name)}\s*\{{")
        lines = text.splitlines(keepends=True)
        for index, line in enumerate(lines):
            if opening.match(line):
                if not line.endswith("\n"):
                    lines[index] = line + "\n"
                lines.insert(index + 1, self._as_lines(directive.content))
                return "".join(lines)
        raise ValueError(f"No '{directive.block_name} {{' block found")

    def apply_directive(self, text: str, directive: PatchDirective) -> Optional[str]:
        """Return the patched text, or None when the marker is already present."""
        if directive.marker in text:
            return None

        if directive.insertion_point == InsertionPoint.FILE_START:
            return self._as_lines(directive.content) + text

        if directive.insertion_point == InsertionPoint.BLOCK_START:
            return self._insert_block_start(text, directive)

        if text and not text.endswith("\n"):
            text += "\n"
        return text + self._as_lines(directive.content)

    def apply_directives(self, text: str, directives: List[PatchDirective]) -> Tuple[str, List[str]]:
        """Apply directives in order.

        Returns:
            (text, applied) where applied lists the markers that were inserted
        """
        applied = []
        for directive in directives:
            patched = self.apply_directive(text, directive)
            if patched is None:
                self.logger.info(f"Already present: {directive.marker}")
                continue
            text = patched
            applied.append(directive.marker)
            self.logger.info(f"Inserted: {directive.marker}")
        return text, applied

    def apply_substitutions(self, text: str, substitutions: List[Substitution]) -> Tuple[str, int]:
        """Replace every occurrence of each pattern.

        Returns:
            (text, replaced) where replaced counts occurrences changed
        """
        replaced = 0
        for substitution in substitutions:
            count = text.count(substitution.pattern)
            if count:
                text = text.replace(substitution.pattern, substitution.replacement)
                self.logger.info(
                    f"Replaced '{substitution.pattern}' with '{substitution.replacement}' ({count}x)"
                )
            replaced += count
        return text, replaced

    def patch_file(
        self,
        file_path: str,
        directives: Optional[List[PatchDirective]] = None,
        substitutions: Optional[List[Substitution]] = None,
    ) -> int:
        """Patch a file in place; the file is only rewritten when it changes.

        Returns:
            Number of insertions plus replacements made
        """
        original = self.file_storage.read_file(file_path)
        text, applied = self.apply_directives(original, directives or [])
        text, replaced = self.apply_substitutions(text, substitutions or [])

        if text != original:
            self.file_storage.write_file(file_path, text)
            self.logger.debug(f"Patched {file_path}")
        return len(applied) + replaced
