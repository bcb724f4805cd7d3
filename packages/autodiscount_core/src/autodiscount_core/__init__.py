"""
Auto-Discount Core - price oscillation runtime

This package provides:
- Contracts (phase enum, sweep results)
- The phase toggle rule
- Persistence models and repository for settings, enrollments and credentials
- Catalog client adapters (Shopify, stub)
- Per-shop locks
- The price oscillation engine and its timer

Storefront UI and the auth handshake that issues shop credentials live
outside this package; only their records are read here.
"""
