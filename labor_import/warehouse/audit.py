"""
Import batch records and audit log operations.

Import batches back duplicate detection, undo and import history; the
audit log is the application-wide append-only change journal.
"""

from datetime import date
from typing import Any
from uuid import UUID

import psycopg
from psycopg.types.json import Jsonb

from labor_import.core.models import AuditEntry, ImportBatch
from labor_import.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

BATCH_COLUMNS = """
    import_id, project_id, import_type, status, imported_by, file_name,
    file_hash, week_ending, imported, updated, skipped, errored,
    error_message, metadata, imported_at
"""


def insert_import_batch(pool: DatabaseConnectionPool, batch: ImportBatch) -> UUID:
    """
    Persist an import batch.

    Args:
        pool: Database connection pool
        batch: ImportBatch to write (import_id is generated when unset)

    Returns:
        import_id of the stored batch

    Raises:
        psycopg.DatabaseError: If insert fails
    """
    insert_sql = """
        INSERT INTO import_batches (
            import_id, project_id, import_type, status, imported_by, file_name,
            file_hash, week_ending, imported, updated, skipped, errored,
            error_message, metadata, imported_at
        ) VALUES (
            COALESCE(%(import_id)s, gen_random_uuid()), %(project_id)s, %(import_type)s,
            %(status)s, %(imported_by)s, %(file_name)s, %(file_hash)s, %(week_ending)s,
            %(imported)s, %(updated)s, %(skipped)s, %(errored)s,
            %(error_message)s, %(metadata)s, %(imported_at)s
        ) RETURNING import_id;
    """
    params = {
        "import_id": batch.import_id,
        "project_id": batch.project_id,
        "import_type": batch.import_type,
        "status": batch.status.value,
        "imported_by": batch.imported_by,
        "file_name": batch.file_name,
        "file_hash": batch.file_hash,
        "week_ending": batch.week_ending,
        "imported": batch.imported,
        "updated": batch.updated,
        "skipped": batch.skipped,
        "errored": batch.errored,
        "error_message": batch.error_message,
        "metadata": Jsonb(batch.metadata),
        "imported_at": batch.imported_at,
    }

    try:
        rows = pool.execute_query(insert_sql, params)
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to insert import batch: {e}")
        raise

    import_id = rows[0]["import_id"]
    logger.debug(
        f"Inserted import batch: import_id={import_id}, status={batch.status.value}"
    )
    return import_id


def get_import_batch(pool: DatabaseConnectionPool, import_id: UUID) -> ImportBatch | None:
    query_sql = f"SELECT {BATCH_COLUMNS} FROM import_batches WHERE import_id = %s"
    rows = pool.execute_query(query_sql, (import_id,))
    return ImportBatch(**rows[0]) if rows else None


def find_successful_batch(
    pool: DatabaseConnectionPool,
    project_id: UUID,
    week_ending: date,
    file_hash: str,
) -> ImportBatch | None:
    """
    Find a prior successful import of identical content for a project-week.

    Partial, failed and undone batches never count.
    """
    query_sql = f"""
        SELECT {BATCH_COLUMNS}
        FROM import_batches
        WHERE project_id = %s
          AND week_ending = %s
          AND file_hash = %s
          AND import_type = 'labor'
          AND status = 'success'
        ORDER BY imported_at DESC
        LIMIT 1
    """
    rows = pool.execute_query(query_sql, (project_id, week_ending, file_hash))
    return ImportBatch(**rows[0]) if rows else None


def update_batch_status(
    pool: DatabaseConnectionPool,
    import_id: UUID,
    status: str,
    metadata: dict[str, Any],
) -> int:
    """
    Set a batch's status and replace its metadata.

    Returns:
        Number of rows updated (0 when the batch does not exist)
    """
    query_sql = """
        UPDATE import_batches
        SET status = %s, metadata = %s
        WHERE import_id = %s
    """
    return pool.execute_command(query_sql, (status, Jsonb(metadata), import_id))


def list_import_batches(
    pool: DatabaseConnectionPool,
    project_id: UUID,
    limit: int = 10,
) -> list[ImportBatch]:
    """List a project's labor imports, newest first."""
    query_sql = f"""
        SELECT {BATCH_COLUMNS}
        FROM import_batches
        WHERE project_id = %s AND import_type = 'labor'
        ORDER BY imported_at DESC
        LIMIT %s
    """
    rows = pool.execute_query(query_sql, (project_id, limit))
    return [ImportBatch(**row) for row in rows]


def insert_audit_entry(pool: DatabaseConnectionPool, entry: AuditEntry) -> int:
    """
    Append an entry to the audit log.

    Args:
        pool: Database connection pool
        entry: AuditEntry model instance

    Returns:
        log_id: Generated log ID

    Raises:
        psycopg.DatabaseError: If insert fails
    """
    insert_sql = """
        INSERT INTO audit_log (
            actor, action, entity_type, entity_id, changes, created_at
        ) VALUES (
            %(actor)s, %(action)s, %(entity_type)s, %(entity_id)s, %(changes)s, %(created_at)s
        ) RETURNING log_id;
    """
    try:
        rows = pool.execute_query(
            insert_sql,
            {
                "actor": entry.actor,
                "action": entry.action,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
                "changes": Jsonb(entry.changes),
                "created_at": entry.created_at,
            },
        )
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to insert audit log: {e}")
        raise

    log_id = rows[0]["log_id"]
    logger.debug(
        f"Inserted audit log entry: log_id={log_id}, "
        f"action={entry.action}, entity_id={entry.entity_id}"
    )
    return log_id


def query_audit_entries(
    pool: DatabaseConnectionPool,
    entity_type: str,
    entity_id: str,
    limit: int = 100,
) -> list[AuditEntry]:
    """Audit entries for one entity, newest first."""
    query_sql = """
        SELECT log_id, actor, action, entity_type, entity_id, changes, created_at
        FROM audit_log
        WHERE entity_type = %(entity_type)s AND entity_id = %(entity_id)s
        ORDER BY created_at DESC, log_id DESC
        LIMIT %(limit)s;
    """
    rows = pool.execute_query(
        query_sql, {"entity_type": entity_type, "entity_id": entity_id, "limit": limit}
    )
    return [AuditEntry(**row) for row in rows]
