"""Core value types shared across pgauth."""
