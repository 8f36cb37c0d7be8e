"""Two-factor voice + eye biometric unlock engine."""

__version__ = "1.0.0"
