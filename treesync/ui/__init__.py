"""Terminal output for treesync."""

from .result_view import ResultView

__all__ = ["ResultView"]
