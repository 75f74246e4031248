"""XP → Level graph service: sample caller-supplied formulas and chart them."""

__version__ = "1.0.0"
