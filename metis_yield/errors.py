from __future__ import annotations


class YieldAggregatorError(Exception):
    """Base error for the yield aggregator."""


class SourceUnavailable(YieldAggregatorError):
    """An upstream source could not be reached or answered with an error."""


class InvalidSourceData(YieldAggregatorError):
    """An upstream payload is missing fields the adapter depends on."""


class GraphQLError(SourceUnavailable):
    def __init__(self, url: str, errors: object):
        super().__init__(f"GraphQL query to {url} failed: {errors}")
        self.url = url
        self.errors = errors


class RpcError(SourceUnavailable):
    def __init__(self, method: str, error: object):
        super().__init__(f"RPC {method} failed: {error}")
        self.method = method
        self.error = error


class AggregationError(YieldAggregatorError):
    """Populating the record set failed and there is no cached data to fall back on."""
