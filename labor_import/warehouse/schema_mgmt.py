"""
DDL for the labor cost warehouse.

Creates the project and worker registries, detail lines, category
aggregates, running averages, import batches and the audit log.
Statements are idempotent.
"""

from .connection import DatabaseConnectionPool

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id  UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    job_number  VARCHAR(32) NOT NULL,
    name        TEXT NOT NULL,
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_projects_job_number ON projects (job_number);

CREATE TABLE IF NOT EXISTS workers (
    worker_id        UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    employee_number  VARCHAR(32) NOT NULL UNIQUE,
    first_name       TEXT NOT NULL,
    last_name        TEXT NOT NULL,
    category         VARCHAR(16) NOT NULL DEFAULT 'direct'
                     CHECK (category IN ('direct', 'indirect', 'staff')),
    base_rate        NUMERIC NOT NULL DEFAULT 0 CHECK (base_rate >= 0),
    craft_code       VARCHAR(32),
    is_active        BOOLEAN NOT NULL DEFAULT TRUE,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS labor_detail_lines (
    line_id      BIGSERIAL PRIMARY KEY,
    worker_id    UUID NOT NULL REFERENCES workers (worker_id),
    project_id   UUID NOT NULL REFERENCES projects (project_id),
    week_ending  DATE NOT NULL,
    st_hours     NUMERIC NOT NULL DEFAULT 0,
    ot_hours     NUMERIC NOT NULL DEFAULT 0,
    st_wages     NUMERIC NOT NULL DEFAULT 0,
    ot_wages     NUMERIC NOT NULL DEFAULT 0,
    daily_hours  JSONB,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (worker_id, project_id, week_ending)
);
CREATE INDEX IF NOT EXISTS idx_detail_project_week
    ON labor_detail_lines (project_id, week_ending);

CREATE TABLE IF NOT EXISTS category_aggregates (
    aggregate_id      BIGSERIAL PRIMARY KEY,
    project_id        UUID NOT NULL REFERENCES projects (project_id),
    category          VARCHAR(16) NOT NULL
                      CHECK (category IN ('direct', 'indirect', 'staff')),
    week_ending       DATE NOT NULL,
    total_hours       NUMERIC NOT NULL DEFAULT 0,
    total_wages       NUMERIC NOT NULL DEFAULT 0,
    burden_rate       NUMERIC NOT NULL DEFAULT 0,
    burden_amount     NUMERIC NOT NULL DEFAULT 0,
    cost_with_burden  NUMERIC NOT NULL DEFAULT 0,
    headcount         INTEGER NOT NULL DEFAULT 0,
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (project_id, category, week_ending)
);

CREATE TABLE IF NOT EXISTS labor_running_averages (
    project_id        UUID NOT NULL REFERENCES projects (project_id),
    category          VARCHAR(16) NOT NULL
                      CHECK (category IN ('direct', 'indirect', 'staff')),
    avg_hours         NUMERIC NOT NULL DEFAULT 0,
    avg_cost          NUMERIC NOT NULL DEFAULT 0,
    week_count        INTEGER NOT NULL DEFAULT 0,
    last_week_ending  DATE,
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (project_id, category)
);

CREATE TABLE IF NOT EXISTS import_batches (
    import_id      UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    project_id     UUID NOT NULL REFERENCES projects (project_id),
    import_type    VARCHAR(32) NOT NULL DEFAULT 'labor',
    status         VARCHAR(16) NOT NULL
                   CHECK (status IN ('pending', 'success', 'partial', 'failed', 'undone')),
    imported_by    TEXT NOT NULL,
    file_name      TEXT NOT NULL,
    file_hash      VARCHAR(64),
    week_ending    DATE,
    imported       INTEGER NOT NULL DEFAULT 0,
    updated        INTEGER NOT NULL DEFAULT 0,
    skipped        INTEGER NOT NULL DEFAULT 0,
    errored        INTEGER NOT NULL DEFAULT 0,
    error_message  TEXT,
    metadata       JSONB NOT NULL DEFAULT '{}'::jsonb,
    imported_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_import_batches_lookup
    ON import_batches (project_id, week_ending, file_hash, status);

CREATE TABLE IF NOT EXISTS audit_log (
    log_id       BIGSERIAL PRIMARY KEY,
    actor        TEXT NOT NULL,
    action       VARCHAR(64) NOT NULL,
    entity_type  VARCHAR(64) NOT NULL,
    entity_id    TEXT NOT NULL,
    changes      JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_audit_log_entity ON audit_log (entity_type, entity_id);
"""

# Child tables first
TABLES = (
    "audit_log",
    "import_batches",
    "labor_running_averages",
    "category_aggregates",
    "labor_detail_lines",
    "workers",
    "projects",
)


class SchemaManager:
    """
    Creates and resets the warehouse tables.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def create_schema(self) -> None:
        """Create all tables and indexes if they do not exist."""
        with self.pool.get_cursor() as cur:
            cur.execute(SCHEMA_DDL)

    def truncate_all(self) -> None:
        """Remove every row from every table (test and reset helper)."""
        with self.pool.get_cursor() as cur:
            cur.execute(f"TRUNCATE TABLE {', '.join(TABLES)} CASCADE")

    def list_tables(self) -> list[str]:
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = ANY(%s)
            ORDER BY table_name
        """
        rows = self.pool.execute_query(query, (list(TABLES),))
        return [row["table_name"] for row in rows]
