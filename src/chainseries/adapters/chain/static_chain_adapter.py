from decimal import Decimal
from typing import Dict, List, Optional, Set

from chainseries.core.dto import InternalTransaction
from chainseries.core.errors import UpstreamError
from chainseries.ports.chain_data_port import BlockTag, ChainDataPort


class StaticChainAdapter(ChainDataPort):
    def __init__(self,
                 current_block: int = 0,
                 balances: Optional[Dict[int, Decimal]] = None,
                 current_balance: Optional[Decimal] = None,
                 internal_txs: Optional[List[InternalTransaction]] = None,
                 ts_to_block: Optional[Dict[int, int]] = None,
                 failing_blocks: Optional[Set[int]] = None,
                 ):
        self._current_block = current_block
        self._balances = dict(balances or {})
        self._current_balance = current_balance
        self._txs = list(internal_txs or [])
        self._ts_to_block = ts_to_block or {}
        self._failing = set(failing_blocks or ())
        self.calls: List[str] = []

    def get_current_block_height(self):
        self.calls.append("block_height")
        return self._current_block

    def get_block_number_by_time(self, unix_ts, closest: str = "before"):
        self.calls.append("block_by_time")
        return self._ts_to_block.get(int(unix_ts), 0)

    def get_balance_at_block(self, address, block: BlockTag = "latest"):
        self.calls.append("balance")
        if block == "latest":
            if self._current_balance is not None:
                return self._current_balance
            block = self._current_block
        if block in self._failing:
            raise UpstreamError(500, f"balance unavailable at {block}")
        return self._balances.get(int(block), Decimal("0"))

    def get_internal_transactions(self, contract_address, address):
        self.calls.append("internal_txs")
        src = contract_address.lower()
        dst = address.lower()
        items = [
            t for t in self._txs
            if t.from_address.lower() == src and t.to_address.lower() == dst
        ]
        items.sort(key=lambda t: t.block_height)
        return items
