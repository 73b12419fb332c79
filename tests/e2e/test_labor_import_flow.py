"""
End-to-end tests: workbook bytes through the pipeline into PostgreSQL,
then undo and history over the stored imports.

Requires Docker for the PostgreSQL testcontainer.
"""

from decimal import Decimal

import pytest

from labor_import.batch import ImportHistory, ImportUndoService, LaborImportPipeline, UndoRejected
from labor_import.core.categories import LaborCategory
from labor_import.core.errors import ErrorKind
from labor_import.core.models import DiagnosticCode, ImportStatus, ImportSubmission
from factories import WEEK_ENDING, WEEK_SERIAL, build_workbook, labor_row, seed_worker

CREW = [f"T{1000 + i}" for i in range(10)]


def submit(content: bytes, **kwargs) -> ImportSubmission:
    return ImportSubmission(file_name="week3.xlsx", content=content, imported_by="tester", **kwargs)


@pytest.fixture
def project(pg_store):
    return pg_store.projects.create("5772", "LS DOW Expansion")


@pytest.fixture
def crew(clean_db):
    for number in CREW:
        seed_worker(clean_db, number, rate="30")
    return CREW


@pytest.fixture
def pipeline(pg_store) -> LaborImportPipeline:
    return LaborImportPipeline(pg_store)


@pytest.mark.e2e
@pytest.mark.integration
class TestLaborImportFlow:
    """Full import lifecycle against PostgreSQL"""

    def test_import_correct_and_undo(self, pipeline, pg_store, project, crew):
        content = build_workbook(
            [labor_row(n) for n in crew] + [labor_row("T2005", name="Lachance, Cory", craft="IND-LAB")]
        )

        first = pipeline.run(submit(content))

        assert first.status is ImportStatus.SUCCESS
        assert first.imported == 10
        assert first.new_employees_created == 1
        assert first.zero_rate_employees == 1
        aggregate = pg_store.fetch_aggregates(project.project_id, WEEK_ENDING)[LaborCategory.DIRECT]
        assert aggregate.total_hours == Decimal("450")
        assert aggregate.total_wages == Decimal("14250")
        assert aggregate.burden_amount == Decimal("3360")
        assert aggregate.cost_with_burden == Decimal("17610")
        assert aggregate.headcount == 10
        assert pg_store.fetch_workers(["T2005"])["T2005"].category is LaborCategory.INDIRECT

        duplicate = pipeline.run(submit(content))
        assert duplicate.error_kind is ErrorKind.DUPLICATE
        assert len(pg_store.list_imports(project.project_id)) == 1

        corrected = pipeline.run(submit(build_workbook([labor_row(n, st=32) for n in crew])))
        assert corrected.status is ImportStatus.SUCCESS
        assert (corrected.imported, corrected.updated) == (0, 10)
        aggregate = pg_store.fetch_aggregates(project.project_id, WEEK_ENDING)[LaborCategory.DIRECT]
        assert aggregate.total_hours == Decimal("370")
        assert len(pg_store.fetch_detail_lines(project.project_id, WEEK_ENDING)) == 10
        average = pg_store.fetch_running_averages(project.project_id)[LaborCategory.DIRECT]
        assert (average.avg_hours, average.week_count) == (Decimal("370"), 1)

        undo = ImportUndoService(pg_store).undo(first.import_id, "admin")

        assert undo.success
        assert undo.detail_lines_deleted == 10
        assert undo.aggregates_deleted == 1
        assert undo.workers_deleted == 1
        assert pg_store.fetch_detail_lines(project.project_id, WEEK_ENDING) == []
        assert pg_store.fetch_running_averages(project.project_id)[LaborCategory.DIRECT].week_count == 0
        assert pg_store.get_import(first.import_id).status is ImportStatus.UNDONE
        [entry] = pg_store.audit_entries("labor_import", str(first.import_id))
        assert entry.action == "undo_import"

        with pytest.raises(UndoRejected):
            ImportUndoService(pg_store).undo(first.import_id, "admin")

    def test_threshold_failure_is_recorded(self, pipeline, pg_store, project, clean_db):
        numbers = [f"T{3000 + i}" for i in range(50)]
        for number in numbers:
            seed_worker(clean_db, number)
        rows = [
            labor_row(n, daily=[17, 9, 9, 9, 0, 0, 0]) if i < 6 else labor_row(n)
            for i, n in enumerate(numbers)
        ]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.error_kind is ErrorKind.THRESHOLD
        assert all(e.code == DiagnosticCode.DAILY_HOURS_EXCEEDED for e in result.errors)
        assert len(pg_store.fetch_detail_lines(project.project_id, WEEK_ENDING)) == 44
        batch = pg_store.get_import(result.import_id)
        assert batch.status is ImportStatus.FAILED
        assert batch.errored == 6

    def test_mismatched_job_records_failed_import(self, pipeline, pg_store, project, crew):
        content = build_workbook([labor_row(crew[0])], job_cell="6001 Other Job")

        result = pipeline.run(submit(content, project_id=project.project_id))

        assert result.error_kind is ErrorKind.METADATA
        batch = pg_store.get_import(result.import_id)
        assert batch.status is ImportStatus.FAILED
        assert batch.metadata["error_type"] == "metadata"
        assert batch.week_ending == WEEK_ENDING

    def test_concurrent_weeks_and_history(self, pipeline, pg_store, project, crew):
        submissions = [
            submit(build_workbook([labor_row(n) for n in crew], week_cell=WEEK_SERIAL + 7 * offset))
            for offset in range(3)
        ]

        results = pipeline.run_many(submissions, max_workers=3)

        assert [r.status for r in results] == [ImportStatus.SUCCESS] * 3
        history = ImportHistory(pg_store)
        assert len(history.recent(project.project_id, limit=10)) == 3
        freshness = history.freshness(project.project_id)
        assert freshness.status == "current"
        assert freshness.age_days == 0
