"""Training analytics for strength-training session history."""

__version__ = "0.1.0"
