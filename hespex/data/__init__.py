"""
Simulated data products for tests and examples.
"""
