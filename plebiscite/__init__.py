"""
Plebiscite — Domain Core for an Idea Voting Platform
=====================================================
Ideas are endorsed or opposed by community members, ranked by
time-windowed popularity metrics, merged into one another, and advanced
through an official lifecycle (in progress → successful / failed /
compromised).  This package is the state machine and aggregate-consistency
engine behind that; web delivery, search and ranking jobs live elsewhere.

Package layout::

    plebiscite/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Status codes, windows, validation bounds
    ├── errors.py          # Typed exception hierarchy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + transactional session helper
    │   ├── models.py      # All ORM models (ideas, endorsements, points, …)
    │   └── seed.py        # Default categories / sub-instance seeder
    ├── engine/
    │   ├── lifecycle.py   # Explicit idea state machine
    │   ├── activities.py  # Activity-kind inversion table for flips
    │   ├── metrics.py     # Controversy, movement text, change percent
    │   └── scopes.py      # Configurable query predicates
    └── services/
        ├── idea_service.py            # Create / validate / flag / lifecycle events
        ├── vote_service.py            # Vote ledger + counter recount
        ├── official_status_service.py # Official outcome axis + ad refunds
        ├── merge_service.py           # Merge / flip one idea into another
        └── notifications.py           # Notifier protocol + logging default
"""

__version__ = "0.1.0"
