"""
Portfolio bounded context, application layer.

One use case per operation: trade, snapshot, settings update, stock
listing, advisory lookups, value history and market-data refresh.
"""
