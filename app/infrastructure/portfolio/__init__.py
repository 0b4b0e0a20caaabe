"""
Portfolio bounded context, infrastructure layer.

In-memory repositories, demo seed, the quote cache and the Tinkoff
Invest market-data adapter.
"""
