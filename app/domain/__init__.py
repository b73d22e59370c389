"""
Domain layer package.

Catalog and order entities, cadence arithmetic, pricing, the port
interfaces adapters implement, and the domain error hierarchy.
No framework imports and no IO.
"""
