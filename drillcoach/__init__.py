"""
drillcoach: adaptive drill assignment and progression tracking.

Packages:
- core: domain models, tuning config, errors and progression events
- adaptive: difficulty model, struggle detector, candidate scorer, selector
- progression: confidence / XP / streak ledger
- session: session lifecycle orchestration
- store: record store interface and adapters
- db: SQLAlchemy models and engine helpers
- cli: typer command line
"""

__version__ = "1.0.0"
