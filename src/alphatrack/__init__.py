"""Live daily-volume tracking and reward-target projection for Alpha competitions."""

__version__ = "0.1.0"
