"""
Adapter: Simulated settlement backend.

Implements SettlementPort without touching a chain. Every execution
succeeds with a synthetic transaction hash and a small random gas figure.
"""

import random
import string
import time
from decimal import Decimal
from typing import Optional

from app.domain.dca.entities import DCAOrder, ExecutionReceipt
from app.domain.dca.ports import SettlementPort

_ALPHABET = string.digits + string.ascii_lowercase


class SimulatedSettlementAdapter(SettlementPort):
    """Settlement stand-in producing ``sim_<epoch ms>_<9 base36 chars>`` hashes."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def execute(self, order: DCAOrder) -> ExecutionReceipt:
        millis = int(time.time() * 1000)
        suffix = "".join(self._rng.choice(_ALPHABET) for _ in range(9))
        gas = Decimal(str(round(self._rng.random() * 0.001, 8)))
        if gas >= Decimal("0.001"):
            gas = Decimal("0.00099999")
        return ExecutionReceipt(tx_hash=f"sim_{millis}_{suffix}", gas_used=gas)
