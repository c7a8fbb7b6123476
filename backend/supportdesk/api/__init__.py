"""API Package - Routers, dependencies and middleware"""
from .deps import get_container

__all__ = ["get_container"]
