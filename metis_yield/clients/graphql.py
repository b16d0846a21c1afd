from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from metis_yield.errors import GraphQLError, InvalidSourceData
from metis_yield.http import HttpClient

logger = logging.getLogger(__name__)


async def graphql_query(http: HttpClient, url: str, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"query": query, "variables": variables or {}}
    resp = await http.post(url, json=payload, headers={"Content-Type": "application/json"})
    data = resp.json()
    if data.get("errors"):
        logger.warning(f"GraphQL errors from {url}: {data['errors']}")
        raise GraphQLError(url, data["errors"])
    if not isinstance(data.get("data"), dict):
        raise InvalidSourceData(f"GraphQL response from {url} has no data")
    return data["data"]
