"""
plebiscite.__main__ — Entry point for ``python -m plebiscite``
==============================================================

Wiring:
1. Load .env (DATABASE_URL).
2. Load config.yaml (community settings).
3. Create the SQLAlchemy engine, ensure tables exist and seed defaults.
4. Report how many ideas are currently published under the configured
   scope rules.

Schema changes in production go through Alembic (``alembic upgrade head``);
this entry point is for bootstrapping a fresh database.

Run with::

    uv run python -m plebiscite
"""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from plebiscite.config import load_config
from plebiscite.database.engine import create_db_engine, init_db
from plebiscite.database.models import Idea
from plebiscite.engine.scopes import IdeaScopes

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("plebiscite")


def main() -> None:
    """Bootstrap the Plebiscite database."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    try:
        cfg = load_config()
    except FileNotFoundError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    try:
        engine = create_db_engine()
    except RuntimeError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    init_db(engine)

    # 4. Summary.
    scopes = IdeaScopes.from_config(cfg)
    published = scopes.published(select(func.count(Idea.id)))
    with Session(engine) as session:
        count = session.scalar(published) or 0
    logger.info(
        "Ready — %d published idea(s)%s",
        count,
        " (empty ideas suppressed)" if cfg.suppress_empty_ideas else "",
    )


if __name__ == "__main__":
    main()
