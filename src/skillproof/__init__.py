"""Scenario-based skills assessment generation and scoring engine."""

__version__ = "0.1.0"
