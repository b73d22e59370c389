"""
Timer-driven background jobs.
"""
