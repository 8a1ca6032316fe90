"""Crypto market analysis workflow."""
from .market import build_market_workflow, run_market_workflow

__all__ = ["build_market_workflow", "run_market_workflow"]
