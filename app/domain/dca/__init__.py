"""
DCA bounded context: domain layer.

This module contains all domain logic for the DCA context:
- Token / gateway / trading pair catalog with admin overrides
- Liquidity feed reconciliation rules
- Recurring order cadence and execution records
"""
