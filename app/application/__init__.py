"""
Application layer package.

Use cases that orchestrate the DCA domain: catalog reconciliation,
order lifecycle and the execution tick. Each use case is a class with
a single ``execute`` method and talks to storage only through ports.
"""
