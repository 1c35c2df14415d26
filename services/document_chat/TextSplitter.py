"""Deterministic overlapping text splitter.

Greedy fixed-width windows of chunk_size characters. Each chunk after the
first starts exactly chunk_overlap characters before the end of the previous
one, so dropping the first chunk_overlap characters of every chunk but the
first and concatenating gives back the input text.

With snap_to_boundaries enabled, a window that would cut the text is ended
early at the last paragraph break, line break, sentence end or space inside
its second half, so words are not split. With it disabled, windows are cut at
exactly chunk_size characters.
"""

from shared.exceptions.errors import InvalidConfigError

# searched in this order; the first separator found in the tolerance window wins
_SEPARATORS = ("\n\n", "\n", ". ", " ")


class TextSplitter:
    def __init__(self, chunk_size: int, chunk_overlap: int, snap_to_boundaries: bool = True) -> None:
        if chunk_size <= 0:
            raise InvalidConfigError(f"chunk_size must be > 0, got {chunk_size}.")
        if chunk_overlap < 0:
            raise InvalidConfigError(f"chunk_overlap must be >= 0, got {chunk_overlap}.")
        if chunk_size <= chunk_overlap:
            raise InvalidConfigError(
                f"chunk_size ({chunk_size}) must be greater than chunk_overlap ({chunk_overlap})."
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.snap_to_boundaries = snap_to_boundaries
        # a snapped chunk stays longer than the overlap, so every step advances
        self._min_snapped_len = max(chunk_overlap + 1, chunk_size // 2)

    def split(self, text: str) -> list[str]:
        """Split text into ordered, overlapping chunks of at most chunk_size characters.

        Args:
            text (str): The full document text.

        Returns:
            list[str]: Ordered list of text chunks. Empty for empty input.
        """
        if not text:
            return []

        chunks: list[str] = []
        start = 0
        while True:
            end = min(start + self.chunk_size, len(text))
            if end < len(text) and self.snap_to_boundaries:
                end = self._snap_end(text, start, end)
            chunks.append(text[start:end])
            if end >= len(text):
                break
            start = end - self.chunk_overlap
        return chunks

    def _snap_end(self, text: str, start: int, end: int) -> int:
        floor = start + self._min_snapped_len
        for separator in _SEPARATORS:
            idx = text.rfind(separator, floor, end)
            if idx != -1:
                return idx + len(separator)
        return end
