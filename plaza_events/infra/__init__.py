"""Infra layer utilities (response cache, request throttle)."""

from .cache import CacheEntry, CacheError, HTTPCache
from .throttle import RequestThrottle

__all__ = ["CacheEntry", "CacheError", "HTTPCache", "RequestThrottle"]
