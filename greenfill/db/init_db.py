"""
Initialize ledger tables
Run this once: python -m greenfill.db.init_db
"""

import asyncio
import logging

from greenfill.config import configure_logging, get_settings
from greenfill.db.database import init_db


logger = logging.getLogger(__name__)


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    logger.info("Creating ledger tables...")
    asyncio.run(init_db())
