from __future__ import annotations

import logging
from typing import Any, Optional

from metis_yield.constants import TOTAL_SUPPLY_SELECTOR
from metis_yield.errors import InvalidSourceData, RpcError
from metis_yield.http import HttpClient

logger = logging.getLogger(__name__)


def to_block_tag(block_number: int | str | None) -> str:
    """JSON-RPC block tag for a block number; ``latest`` when none is given."""
    if block_number is None or block_number == "":
        return "latest"
    return hex(int(block_number))


async def rpc_call(http: HttpClient, url: str, method: str, params: Optional[list] = None) -> Any:
    payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or []}
    resp = await http.post(url, json=payload)
    data = resp.json()
    if "error" in data:
        raise RpcError(method, data["error"])
    return data.get("result")


async def get_total_supply(http: HttpClient, url: str, token: str, block_number: int | str | None = None) -> int:
    """ERC20 ``totalSupply()`` as of ``block_number`` (raw integer units)."""
    call = {"to": token, "data": TOTAL_SUPPLY_SELECTOR}
    result = await rpc_call(http, url, "eth_call", [call, to_block_tag(block_number)])
    if not isinstance(result, str) or not result.startswith("0x") or len(result) < 3:
        raise InvalidSourceData(f"Unexpected totalSupply result: {result!r}")
    return int(result, 16)
