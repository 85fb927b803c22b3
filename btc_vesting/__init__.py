"""Bitcoin compensation vesting projections."""

__version__ = "0.1.0"
