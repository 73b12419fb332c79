"""
Domain core: models, categories, wage and aggregation rules.
"""
