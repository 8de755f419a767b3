from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from chainseries.core.models import CacheSnapshot, TimeFrameKey


def _dec_to_num(x: Decimal) -> float:
    # chart client expects plain JSON numbers
    return float(x)


def snapshot_to_dict(s: CacheSnapshot) -> Dict[str, Any]:
    return {
        "labels": list(s.labels),
        "supplyChange": [_dec_to_num(v) for v in s.supply_change],
        "cumulativeGenerated": [_dec_to_num(v) for v in s.cumulative_generated],
        "contractBalanceTotal": _dec_to_num(s.contract_balance_total),
        "currentEthTotal": _dec_to_num(s.current_eth_total),
        "generatedAt": s.generated_at.isoformat() if s.generated_at else None,
    }


def cache_to_dict(snapshots: Mapping[TimeFrameKey, Optional[CacheSnapshot]]) -> Dict[str, Any]:
    return {
        k.value: (snapshot_to_dict(s) if s is not None else None)
        for k, s in snapshots.items()
    }
