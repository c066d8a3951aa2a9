"""Conversation history and error tracking for the table-mode loop.

The chat provider keeps its own turn history; what is kept here is the
transcript of tool results later handed to the extraction call, plus the
bookkeeping that stops the loop when a tool keeps failing the same way.
"""

from ..exceptions import RepeatedToolError
from ..logging import get_logger
from ..types import IterationState

logger = get_logger(__name__)


class MemoryManager:
    """Manages the conversation history and repeated-error detection.

    This class encapsulates:
    - The append-only conversation history
    - The signature of the last tool error and how often it repeated
    """

    def __init__(self, error_threshold: int = 3, signature_chars: int = 200):
        """Initialize the memory manager with empty state.

        Args:
            error_threshold: Identical consecutive errors that stop the loop.
            signature_chars: Prefix length used to compare errors.
        """
        self.error_threshold = error_threshold
        self.signature_chars = signature_chars
        self.state = IterationState()

    @property
    def history(self) -> str:
        """The full conversation history text."""
        return self.state.history_text

    def add_entry(self, text: str) -> None:
        """Append a line to the conversation history.

        Args:
            text: The entry; a trailing newline is added if missing.
        """
        if not text.endswith("\n"):
            text += "\n"
        self.state.conversation_history.append(text)

    def start_iteration(self, index: int) -> None:
        self.state.iteration_index = index

    def record_result(self, result: str, is_error: bool) -> bool:
        """Track a tool result and decide whether it belongs in the history.

        Non-error results reset the error tracking. An error whose signature
        differs from the last one starts a new streak of one. An error equal
        to the last one extends the streak.

        Args:
            result: Raw tool result text.
            is_error: Whether the result was classified as an error.

        Returns:
            True if the result should be appended to the history (non-errors
            and the first occurrence of an error).

        Raises:
            RepeatedToolError: When the streak reaches the threshold.
        """
        if not is_error:
            self.state.consecutive_identical_errors = 0
            self.state.last_error_signature = ""
            return True

        signature = result[:self.signature_chars]
        if signature == self.state.last_error_signature:
            self.state.consecutive_identical_errors += 1
            count = self.state.consecutive_identical_errors
            logger.warning(f"same tool error repeated {count} times")
            if count >= self.error_threshold:
                raise RepeatedToolError(signature, count)
            return False

        self.state.last_error_signature = signature
        self.state.consecutive_identical_errors = 1
        return True

    def clear(self) -> None:
        """Reset all state for a new run."""
        self.state = IterationState()
