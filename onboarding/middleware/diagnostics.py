"""
Startup diagnostics: runs once when the Flask app starts.

Checks the database and logs a summary banner.
"""

import logging
import sys

from flask import Flask
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError

from onboarding.models import db

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Database connectivity ────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except SQLAlchemyError as exc:
            db.session.rollback()
            db_status = "FAILED"
            issues.append(f"Database unreachable: {exc}")

        # ── Table count ──────────────────────────────────────────────
        try:
            tables = sa_inspect(db.engine).get_table_names()
            table_count = len(tables)
            if table_count == 0:
                issues.append("No tables found; run 'flask db upgrade'")
        except SQLAlchemyError:
            table_count = "?"

        redis_url = app.config.get("REDIS_URL", "")
        limiter_storage = "redis" if redis_url else "memory"
        deadline = "ENFORCED" if app.config.get("SESSION_DEADLINE_ENFORCED") else "advisory"

        banner = f"""
╔══════════════════════════════════════════════════════════════╗
║  Hackathon Onboarding: Startup Diagnostics                   ║
╠══════════════════════════════════════════════════════════════╣
║  Python      : {py:<46s}║
║  Debug       : {str(app.debug):<46s}║
║  Database    : {db_type + ' (' + db_status + ')':<46s}║
║  Tables      : {str(table_count):<46s}║
║  Rate limits : {limiter_storage:<46s}║
║  Session     : {str(app.config.get('SESSION_DURATION_HOURS', 12)) + 'h, ' + deadline:<46s}║
╚══════════════════════════════════════════════════════════════╝"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  ⚠ %s", issue)
        else:
            logger.info("✅ All startup checks passed")
