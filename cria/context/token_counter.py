"""Token counting with pluggable backends."""

from typing import Protocol


class TokenCounter(Protocol):
    """Protocol for token counting implementations."""

    def count(self, text: str) -> int:
        """Count tokens in a text string."""
        ...


class SimpleTokenCounter:
    """Simple character-based token estimation.

    Uses a heuristic that ~4 characters = 1 token (common for English text).
    Good enough for rough estimates without loading an encoding.
    """

    CHARS_PER_TOKEN = 4

    def count(self, text: str) -> int:
        """Count tokens using character-based estimation.

        Args:
            text: Text string to count tokens for.

        Returns:
            Estimated token count.
        """
        if not text:
            return 0
        return max(1, len(text) // self.CHARS_PER_TOKEN)


class TiktokenCounter:
    """Accurate token counting using tiktoken.

    Uses cl100k_base encoding by default (GPT-4 family).
    """

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        """Initialize with tiktoken encoding.

        Args:
            encoding_name: Tiktoken encoding name (default: cl100k_base)
        """
        import tiktoken

        self.encoding_name = encoding_name
        self._encoder = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        """Count tokens using tiktoken.

        Args:
            text: Text string to count tokens for.

        Returns:
            Accurate token count.
        """
        if not text:
            return 0
        return len(self._encoder.encode(text))


def get_token_counter(use_tiktoken: bool = False, encoding_name: str = "cl100k_base") -> TokenCounter:
    """Factory function to get a token counter.

    Args:
        use_tiktoken: Use tiktoken for exact counts instead of the estimate.
        encoding_name: Encoding passed to TiktokenCounter.

    Returns:
        TokenCounter implementation.

    Example:
        >>> counter = get_token_counter(use_tiktoken=True)
        >>> tokens = counter.count("Hello, world!")
    """
    if use_tiktoken:
        return TiktokenCounter(encoding_name)
    return SimpleTokenCounter()
