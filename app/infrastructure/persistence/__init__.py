"""
Relational persistence: table definitions and engine construction.
"""
