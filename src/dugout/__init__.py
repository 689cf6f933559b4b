"""
Dugout - fantasy cricket points pipeline

Pulls match scorecards from cricket data providers, normalises them into
per-player performance records and turns those into fantasy points using
each tournament's points table.

Main components:
- providers: Adapters for the upstream cricket APIs (CricAPI, SportMonks)
- players: Provider player id -> internal player resolution
- scoring: Performance merging and the points rules engine
- services: Ingestion, live scoring, finalization and bonus corrections
- tasks: Stage registry, run results and per-match leases
- db: SQLAlchemy models and session management
"""

__version__ = "1.0.0"
