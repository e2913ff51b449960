"""
plebiscite.config — YAML Configuration Loader
==============================================

Reads ``config.yaml`` for the handful of community-wide switches the domain
core needs.  Secrets (the database URL) stay in the environment; see
:func:`plebiscite.database.engine.create_db_engine`.

Usage::

    from plebiscite.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    scopes = IdeaScopes.from_config(cfg)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True, slots=True)
class PlebisciteConfig:
    """Immutable configuration loaded from ``config.yaml``.

    ``suppress_empty_ideas`` replaces the old instance-wide toggle on what
    counts as "published": it is handed to the scope builder at
    construction time instead of being read from global state.
    """

    community_name: str

    # Scopes
    suppress_empty_ideas: bool = False
    top_rank_cutoff: int = 25

    # Vote ledger
    default_sub_instance_id: int = 1  # Never recorded on an endorsement

    # Presentation
    new_idea_days: int = 7


DEFAULT_CONFIG = PlebisciteConfig(community_name="Plebiscite")


def load_config(path: str | Path = "config.yaml") -> PlebisciteConfig:
    """Read *path* and return a :class:`PlebisciteConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If ``community_name`` is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return PlebisciteConfig(
        community_name=raw["community_name"],
        suppress_empty_ideas=bool(raw.get("suppress_empty_ideas", False)),
        top_rank_cutoff=int(raw.get("top_rank_cutoff", 25)),
        default_sub_instance_id=int(raw.get("default_sub_instance_id", 1)),
        new_idea_days=int(raw.get("new_idea_days", 7)),
    )
