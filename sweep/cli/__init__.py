"""
Command-line interface for the SWEEP parameter search system.
"""
