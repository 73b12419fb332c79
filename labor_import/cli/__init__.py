"""
Command-line entry points for the labor import pipeline.
"""
