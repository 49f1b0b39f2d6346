"""prpulse: GitHub pull request polling and CI status reconciliation."""

__version__ = "0.1.0"
