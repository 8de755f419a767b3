from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Union

from chainseries.core.dto import InternalTransaction

BlockTag = Union[int, str]


class ChainDataPort(ABC):
    """
    Abstract Class for fetching the chain facts the series are built from.
    """

    # --- Blocks ---

    @abstractmethod
    def get_current_block_height(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_block_number_by_time(self, unix_ts: int, closest: str = "before") -> int:
        raise NotImplementedError

    # --- Balances (whole ether) ---

    @abstractmethod
    def get_balance_at_block(self, address: str, block: BlockTag = "latest") -> Decimal:
        raise NotImplementedError

    # --- Internal transactions contract -> address ---

    @abstractmethod
    def get_internal_transactions(
        self,
        contract_address: str,
        address: str,
    ) -> List[InternalTransaction]:
        raise NotImplementedError
