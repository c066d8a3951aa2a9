"""Scanner for brace-matched objects in model output.

Model output is not guaranteed to be valid JSON, so objects are located by
walking the text and counting braces rather than by parsing. The first
balanced object wins; an object that never balances yields nothing.

Two counting rules are supported:

- string-aware (default): a double quote toggles string state, a backslash
  inside a string escapes the next character, and braces inside strings are
  not counted.
- naive (``string_aware=False``): every ``{`` and ``}`` counts, including
  those inside quoted values. This is the legacy rule, kept for output that
  depends on it.

String state only exists inside an object: text before the opening brace is
never tokenized.
"""

from typing import Iterator


class BraceScanner:
    """Locates brace-matched objects in text.

    Usage:
        scanner = BraceScanner()
        span = scanner.find_object(text)
        for obj in scanner.iter_objects(text):
            ...
    """

    def __init__(self, string_aware: bool = True):
        """Initialize the scanner.

        Args:
            string_aware: Whether braces inside quoted strings are ignored
        """
        self.string_aware = string_aware

    def match_close(self, text: str, open_idx: int) -> int | None:
        """Find the index of the brace closing the one at ``open_idx``.

        Args:
            text: The text to scan
            open_idx: Index of a ``{`` in text

        Returns:
            Index of the matching ``}``, or None if the object never balances
        """
        depth = 0
        in_string = False
        escape = False
        for i in range(open_idx, len(text)):
            c = text[i]
            if self.string_aware:
                if escape:
                    escape = False
                    continue
                if c == "\\" and in_string:
                    escape = True
                    continue
                if c == '"':
                    in_string = not in_string
                    continue
                if in_string:
                    continue
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    return i
        return None

    def find_object(self, text: str, start: int = 0) -> tuple[int, int] | None:
        """Find the first brace-matched object at or after ``start``.

        Args:
            text: The text to scan
            start: Where to begin looking for an opening brace

        Returns:
            ``(begin, end)`` slice bounds of the object, or None
        """
        open_idx = text.find("{", start)
        if open_idx == -1:
            return None
        close_idx = self.match_close(text, open_idx)
        if close_idx is None:
            return None
        return open_idx, close_idx + 1

    def extract_object(self, text: str, start: int = 0) -> str | None:
        """Return the text of the first brace-matched object after ``start``."""
        span = self.find_object(text, start)
        if span is None:
            return None
        return text[span[0]:span[1]]

    def iter_objects(self, text: str) -> Iterator[str]:
        """Yield successive top-level objects.

        Scanning resumes after each object's closing brace and stops at the
        first object that does not balance.

        Args:
            text: The text to scan

        Yields:
            The text of each object, braces included
        """
        pos = 0
        while True:
            span = self.find_object(text, pos)
            if span is None:
                return
            yield text[span[0]:span[1]]
            pos = span[1]
