"""
Shared utilities for the labor import pipeline.
"""
