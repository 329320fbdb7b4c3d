"""Client for a portfolio-return analysis service.

Validates analysis input, manages portfolio weights, drives the analysis
service through a configurable request strategy and adapts its responses
into one canonical result model.
"""

__version__ = "0.1.0"
