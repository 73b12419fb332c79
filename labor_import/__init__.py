"""
Weekly labor-cost import and reconciliation pipeline.
"""

__version__ = "0.1.0"
