"""
Kitchen routers - /api/kitchen/*
"""

from .queue import router

__all__ = ["router"]
