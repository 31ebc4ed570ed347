"""
Routes package for the journey map API.

- inquiry: diagnostic endpoint returning the compiled journey graph
"""

from .inquiry import create_inquiry_router

__all__ = ["create_inquiry_router"]
