from typing import List


class CodeBuffer:
    """
    Fixed-length sequence of single-digit cells holding a one-time code.

    INVARIANT: every cell is "" or exactly one decimal digit.
    `focus` mirrors which input the UI should focus after each edit.
    """

    def __init__(self, length: int = 6):
        if length <= 0:
            raise ValueError("code length must be positive")
        self.length = int(length)
        self._cells: List[str] = [""] * self.length
        self.focus = 0

    @staticmethod
    def _is_digit(ch: str) -> bool:
        return len(ch) == 1 and ch in "0123456789"

    def set_cell(self, index: int, ch: str) -> bool:
        """Returns False (and changes nothing) for a rejected input."""
        if not 0 <= index < self.length:
            return False
        if not isinstance(ch, str) or (ch != "" and not self._is_digit(ch)):
            return False
        self._cells[index] = ch
        if ch and index + 1 < self.length:
            self.focus = index + 1
        else:
            self.focus = index
        return True

    def clear_cell_and_retreat(self, index: int) -> bool:
        """Backspace over an already-empty cell: move focus to the previous cell."""
        if not 0 <= index < self.length:
            return False
        self._cells[index] = ""
        if index > 0:
            self.focus = index - 1
            return True
        self.focus = 0
        return False

    def paste_bulk(self, text: str) -> bool:
        """All-or-nothing: only exactly `length` digits are accepted."""
        if not isinstance(text, str) or len(text) != self.length:
            return False
        if not all(self._is_digit(ch) for ch in text):
            return False
        self._cells = list(text)
        self.focus = self.length - 1
        return True

    def clear(self) -> None:
        self._cells = [""] * self.length
        self.focus = 0

    def cells(self) -> List[str]:
        return list(self._cells)

    def value(self) -> str:
        return "".join(self._cells)

    def is_complete(self) -> bool:
        return all(self._cells)

    def __repr__(self) -> str:
        filled = sum(1 for c in self._cells if c)
        return f"CodeBuffer(length={self.length}, filled={filled}, focus={self.focus})"
