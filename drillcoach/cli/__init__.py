"""
Command line interface for drillcoach.
"""
