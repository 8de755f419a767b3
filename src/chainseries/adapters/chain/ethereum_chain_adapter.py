import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from chainseries.adapters.chain.fetch_client import RateLimitedFetchClient
from chainseries.core.dto import InternalTransaction
from chainseries.core.errors import DataSourceError, SeriesError, UpstreamError
from chainseries.core.units import wei_to_ether
from chainseries.ports.chain_data_port import BlockTag, ChainDataPort

logger = logging.getLogger(__name__)

_NO_TRANSACTIONS = "no transactions found"


class EthereumChainAdapter(ChainDataPort):
    """
    Balances and block height come from a JSON-RPC provider, internal
    transactions and time->block lookups from an Etherscan-compatible
    explorer. Both go through the same throttled client.
    """

    def __init__(
        self,
        client: RateLimitedFetchClient,
        rpc_url: str,
        explorer_url: str,
        explorer_api_key: Optional[str],
        explorer_chain_id: int = 1,
    ) -> None:
        self._client = client
        self._rpc_url = rpc_url
        self._explorer_url = explorer_url
        self._api_key = explorer_api_key
        self._chainid = explorer_chain_id
        self._rpc_id = 0

    # ---------- internal ----------

    def _rpc(self, method: str, params: List[Any]) -> Any:
        self._rpc_id += 1
        resp = self._client.post(
            self._rpc_url,
            json={"jsonrpc": "2.0", "id": self._rpc_id, "method": method, "params": params},
        )
        data = _json(resp)
        if data.get("error"):
            err = data["error"]
            raise UpstreamError(resp.status_code, f"{method}: {err.get('message', err)}")
        result = data.get("result")
        if result is None:
            raise DataSourceError(f"No result in JSON-RPC response for {method}")
        return result

    def _explorer(self, params: Dict[str, Any]) -> Dict[str, Any]:
        req = dict(params)
        req["apikey"] = self._api_key or ""
        req["chainid"] = str(self._chainid)
        return _json(self._client.get(self._explorer_url, params=req))

    @staticmethod
    def _block_tag(block: BlockTag) -> str:
        if isinstance(block, int):
            if block < 0:
                raise ValueError(f"Negative block height: {block}")
            return hex(block)
        return block

    # ---------- port methods ----------

    def get_current_block_height(self) -> int:
        return _hex_int(self._rpc("eth_blockNumber", []), "eth_blockNumber")

    def get_balance_at_block(self, address: str, block: BlockTag = "latest") -> Decimal:
        raw = self._rpc("eth_getBalance", [address, self._block_tag(block)])
        return wei_to_ether(_hex_int(raw, "eth_getBalance"))

    def get_block_number_by_time(self, unix_ts: int, closest: str = "before") -> int:
        data = self._explorer({
            "module": "block",
            "action": "getblocknobytime",
            "timestamp": str(int(unix_ts)),
            "closest": closest,
        })
        try:
            return int(data["result"])
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(f"Invalid block result: {data}") from e

    def get_internal_transactions(
        self,
        contract_address: str,
        address: str,
    ) -> List[InternalTransaction]:
        try:
            data = self._explorer({
                "module": "account",
                "action": "txlistinternal",
                "address": address,
                "startblock": 0,
                "endblock": "latest",
                "sort": "asc",
            })
        except SeriesError as e:
            logger.error("internal transactions fetch failed for %s: %s", address, e)
            return []

        if str(data.get("status")) != "1":
            message = str(data.get("message", ""))
            if message.lower() != _NO_TRANSACTIONS:
                logger.error("explorer error for %s: %s (%s)", address, message, data.get("result"))
            return []

        rows = data.get("result")
        if not isinstance(rows, list):
            return []

        source = contract_address.lower()
        out: List[InternalTransaction] = []
        for r in rows:
            if not isinstance(r, dict) or str(r.get("from") or "").lower() != source:
                continue
            try:
                block_height = int(r.get("blockNumber", 0))
            except (TypeError, ValueError):
                logger.warning("skipping internal tx %s with bad block %r", r.get("hash", "?"), r.get("blockNumber"))
                continue
            out.append(
                InternalTransaction(
                    from_address=source,
                    to_address=str(r.get("to") or "").lower(),
                    block_height=block_height,
                    wei_value=str(r.get("value", "0")),
                    tx_hash=r.get("hash", ""),
                )
            )
        return out


def _json(resp) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise DataSourceError(f"Invalid JSON from {resp.url}: {e}") from e
    if not isinstance(data, dict):
        raise DataSourceError(f"Unexpected payload from {resp.url}: {data!r}")
    return data


def _hex_int(raw: Any, method: str) -> int:
    try:
        return int(raw, 16)
    except (TypeError, ValueError) as e:
        raise DataSourceError(f"Invalid {method} result: {raw!r}") from e
