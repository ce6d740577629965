"""Upstream access: transport interface, aiohttp client, gateway and resolver."""

from price_inquiry.data.gateway import UpstreamGateway
from price_inquiry.data.http_fetcher import HttpFetcher
from price_inquiry.data.interfaces import Fetcher
from price_inquiry.data.resolver import SourceResolver, stock_candidates

__all__ = [
    "Fetcher",
    "HttpFetcher",
    "SourceResolver",
    "UpstreamGateway",
    "stock_candidates",
]
