"""
Portfolio bounded context, domain layer.

This module contains all domain logic for the portfolio context:
- Position ledger (buy/sell, weighted-average cost)
- Portfolio aggregation (totals, gain, allocation)
- Value history (live candles, synthetic fallback)
"""
