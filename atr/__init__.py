"""ATR — turns free-form brain dumps into a reconciled task list."""

__version__ = "0.1.0"
