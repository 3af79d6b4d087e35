from typing import Hashable, Optional


class AutomatonError(ValueError):
    """Base class for every error raised by the automaton engine."""


class ValidationError(AutomatonError):
    def __init__(
        self,
        message: str,
        state: Optional[Hashable] = None,
        symbol: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.state = state
        self.symbol = symbol

    def __str__(self) -> str:
        details = []
        if self.state is not None:
            details.append(f"state={self.state!r}")
        if self.symbol is not None:
            details.append(f"symbol={self.symbol!r}")
        if details:
            return f"{self.message} ({', '.join(details)})"
        return self.message


class SymbolError(AutomatonError):
    def __init__(self, symbol: str, position: int, message: Optional[str] = None):
        self.symbol = symbol
        self.position = position
        self.message = message or f"Symbol {symbol!r} is not in the alphabet"
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.message} (position {self.position})"


class SizeLimitError(AutomatonError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Automaton has {size} states, more than the allowed maximum of {limit}"
        )
