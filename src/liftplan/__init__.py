"""liftplan: strength-training program engine."""

__version__ = "0.1.0"
