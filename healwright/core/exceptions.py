class HealingError(RuntimeError):
    """Raised when a failing step cannot be healed."""


class RepairParseError(HealingError):
    """Raised when an oracle reply cannot be mapped onto a healable action."""
