import re
from typing import Any, Optional


class TextValidator:
    """Basic text validation and sanitization for new catalog entries."""

    @staticmethod
    def _is_non_empty_alpha(text: Optional[str]) -> bool:
        if text is None:
            return False
        t = text.strip()
        if not t:
            return False
        # reject purely numeric or punctuation-only text
        return any(c.isalpha() for c in t)

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator._is_non_empty_alpha(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        if author is None:
            return False
        t = author.strip()
        if not t:
            return False
        return not t.isdigit()

    @staticmethod
    def sanitize_text(text: Optional[str]) -> str:
        if text is None:
            return ""
        cleaned = re.sub(r"<[^>]*>", "", text)
        return " ".join(cleaned.split())


class StockValidator:
    @staticmethod
    def validate_stock(stock: Any) -> bool:
        return isinstance(stock, int) and not isinstance(stock, bool) and stock >= 0

    @staticmethod
    def parse_stock(raw: Optional[str], default: int = 1) -> int:
        """Parse menu input; anything unusable (or below 1) falls back to ``default``."""
        try:
            value = int((raw or "").strip())
        except ValueError:
            return default
        return value if value >= 1 else default
