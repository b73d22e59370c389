"""
Infrastructure layer package.

Adapters for the domain ports: SQLAlchemy repositories, the liquidity
feed HTTP client, the simulated settlement and the APScheduler timers.
"""
