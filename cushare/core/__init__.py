"""
Core modules for cushare.

This package contains the usage pipeline: event normalization, duration
estimation, aggregation, session block tracking and pricing.
"""
