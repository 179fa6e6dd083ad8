"""Admin routes for previewing and running the config migration."""

import logging

from firebase_admin import firestore
from flask import current_app, jsonify, request, session

from padelrank.auth.decorators import login_required
from padelrank.constants import SESSION_USER_ID
from padelrank.migration.log import MigrationLog
from padelrank.migration.services import MigrationService, summarize_preview

from . import bp

logger = logging.getLogger("padelrank.migration.admin")


def _migration_service():
    return MigrationService.from_config(firestore.client(), current_app.config)


def _dry_run_flag(payload, default):
    value = payload.get("dryRun", default)
    if isinstance(value, str):
        return value.lower() in ["true", "1", "t"]
    return bool(value)


@bp.route("/migration/preview")
@login_required
def migration_preview():
    """Classify every ranking and return the proposed config changes."""
    operator_id = session[SESSION_USER_ID]
    log = MigrationLog()
    with log.capture():
        logger.info(f"Operator: {operator_id}")
        logger.info("Starting migration preview...")
        records = _migration_service().preview()
        summary = summarize_preview(
            records, current_app.config["MIGRATION_PREVIEW_SAMPLE_SIZE"]
        )
    return jsonify({"summary": summary, "records": records, "log": log.lines})


@bp.route("/migration/run", methods=["POST"])
@login_required
def migration_run():
    """Run the migration over the rankings the operator owns."""
    operator_id = session[SESSION_USER_ID]
    payload = request.get_json(silent=True) or {}
    dry_run = _dry_run_flag(payload, False)

    log = MigrationLog()
    with log.capture():
        logger.info(f"Operator: {operator_id}")
        stats = _migration_service().migrate_all(
            dry_run=dry_run, owner_id=operator_id, operator_id=operator_id
        )
        if stats["errors"]:
            logger.warning(f"Migration completed with {stats['errors']} errors.")
        else:
            logger.info("Migration completed successfully!")
    return jsonify({"stats": stats, "log": log.lines})


@bp.route("/migration/rollback", methods=["POST"])
@login_required(admin_required=True)
def migration_rollback():
    """Restore configs saved by earlier live migrations."""
    payload = request.get_json(silent=True) or {}
    dry_run = _dry_run_flag(payload, False)

    log = MigrationLog()
    with log.capture():
        logger.info(f"Operator: {session[SESSION_USER_ID]}")
        stats = _migration_service().rollback(
            ranking_id=payload.get("rankingId"), dry_run=dry_run
        )
    return jsonify({"stats": stats, "log": log.lines})
