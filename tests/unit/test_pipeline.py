"""
Unit tests for the labor import pipeline, end to end over the in-memory store.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from labor_import.batch.pipeline import LaborImportPipeline
from labor_import.core.categories import LaborCategory
from labor_import.core.config import ImportSettings
from labor_import.core.errors import ErrorKind, PersistenceError
from labor_import.core.models import DiagnosticCode, ImportStatus, ImportSubmission
from labor_import.observability import metrics
from factories import WEEK_ENDING, WEEK_SERIAL, build_workbook, labor_row, make_worker

EMPLOYEES = [f"T{1000 + i}" for i in range(10)]


def submit(content: bytes, project_id=None, force: bool = False, name: str = "week3.xlsx") -> ImportSubmission:
    return ImportSubmission(
        file_name=name, content=content, project_id=project_id, imported_by="tester", force=force
    )


@pytest.fixture
def crew(memory_store):
    """Ten direct workers at $30/h already in the registry"""
    return [memory_store.add_worker(make_worker(number)) for number in EMPLOYEES]


@pytest.fixture
def pipeline(memory_store) -> LaborImportPipeline:
    return LaborImportPipeline(memory_store, ImportSettings())


@pytest.mark.unit
class TestSuccessfulImport:
    """Clean files for known workers"""

    def test_weekly_totals(self, pipeline, memory_store, project, crew):
        content = build_workbook([labor_row(number) for number in EMPLOYEES])

        result = pipeline.run(submit(content))

        assert result.success is True
        assert result.status is ImportStatus.SUCCESS
        assert result.imported == 10
        assert result.updated == 0
        assert result.skipped == 0
        assert result.errors == []
        assert result.employee_count == 10
        assert result.week_ending == WEEK_ENDING
        assert result.project_id == project.project_id

        [aggregate] = memory_store.fetch_aggregates(project.project_id, WEEK_ENDING).values()
        assert aggregate.category is LaborCategory.DIRECT
        assert aggregate.total_hours == Decimal("450")
        assert aggregate.total_wages == Decimal("14250")
        assert aggregate.burden_amount == Decimal("3360")
        assert aggregate.cost_with_burden == Decimal("17610")
        assert aggregate.headcount == 10

        line = memory_store.detail_lines[(crew[0].worker_id, project.project_id, WEEK_ENDING)]
        assert line.st_wages == Decimal("1200")
        assert line.ot_wages == Decimal("225")
        assert set(line.daily_hours) == {"monday", "tuesday", "wednesday", "thursday", "friday"}

        batch = memory_store.imports[result.import_id]
        assert batch.status is ImportStatus.SUCCESS
        assert batch.metadata["worker_counts"] == {"direct": 10}
        assert memory_store.audit_log[-1].action == "import"

    def test_payload_shape(self, pipeline, crew):
        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])])))

        payload = result.to_payload()
        assert payload["success"] is True
        assert payload["employeeCount"] == 1
        assert payload["week_ending"] == "2025-01-19"
        assert "newEmployeesCreated" not in payload

    def test_rows_without_hours_are_skipped(self, pipeline, crew):
        rows = [labor_row(EMPLOYEES[0]), labor_row(EMPLOYEES[1], st=0, ot=0, daily=[0] * 7)]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.SUCCESS
        assert (result.imported, result.skipped) == (1, 1)

    def test_rows_after_totals_are_ignored(self, pipeline, memory_store, crew):
        content = build_workbook(
            [labor_row(EMPLOYEES[0])], trailing=[labor_row(EMPLOYEES[1])]
        )

        result = pipeline.run(submit(content))

        assert result.imported == 1
        assert len(memory_store.detail_lines) == 1

    def test_explicit_project(self, pipeline, project, crew):
        content = build_workbook([labor_row(EMPLOYEES[0])])

        result = pipeline.run(submit(content, project_id=project.project_id))

        assert result.status is ImportStatus.SUCCESS
        assert "find_project_by_job_number" not in pipeline.store.calls


@pytest.mark.unit
class TestResubmission:
    """Duplicate detection and in-place correction"""

    def test_identical_file_is_rejected(self, pipeline, memory_store, crew):
        content = build_workbook([labor_row(number) for number in EMPLOYEES])
        first = pipeline.run(submit(content))
        before = metrics.REGISTRY.get_sample_value("labor_import_runs_total", {"status": "duplicate"}) or 0
        memory_store.calls.clear()

        second = pipeline.run(submit(content))

        assert first.status is ImportStatus.SUCCESS
        assert second.success is False
        assert second.status is ImportStatus.FAILED
        assert second.error_kind is ErrorKind.DUPLICATE
        assert "already imported" in second.error
        assert second.week_ending == WEEK_ENDING
        assert len(memory_store.imports) == 1
        assert "insert_detail_lines" not in memory_store.calls
        assert "update_detail_lines" not in memory_store.calls
        after = metrics.REGISTRY.get_sample_value("labor_import_runs_total", {"status": "duplicate"})
        assert after == before + 1

    def test_corrected_file_updates_in_place(self, pipeline, memory_store, project, crew):
        pipeline.run(submit(build_workbook([labor_row(n) for n in EMPLOYEES])))

        corrected = build_workbook([labor_row(n, st=32) for n in EMPLOYEES])
        result = pipeline.run(submit(corrected))

        assert result.status is ImportStatus.SUCCESS
        assert (result.imported, result.updated) == (0, 10)
        assert len(memory_store.detail_lines) == 10
        aggregate = memory_store.fetch_aggregates(project.project_id, WEEK_ENDING)[LaborCategory.DIRECT]
        assert aggregate.total_hours == Decimal("370")
        assert aggregate.headcount == 10

    def test_corrected_file_missing_a_worker_keeps_their_hours(self, pipeline, memory_store, project, crew):
        pipeline.run(submit(build_workbook([labor_row(n) for n in EMPLOYEES])))

        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0], st=30)])))

        assert result.status is ImportStatus.SUCCESS
        assert (result.updated, result.employee_count) == (1, 1)
        stored = memory_store.fetch_detail_lines(project.project_id, WEEK_ENDING)
        aggregate = memory_store.fetch_aggregates(project.project_id, WEEK_ENDING)[LaborCategory.DIRECT]
        assert aggregate.total_hours == sum(line.total_hours for line in stored) == Decimal("440")
        assert aggregate.headcount == 10

    def test_force_reprocesses_identical_file(self, pipeline, memory_store, crew):
        content = build_workbook([labor_row(n) for n in EMPLOYEES])
        pipeline.run(submit(content))

        result = pipeline.run(submit(content, force=True))

        assert result.status is ImportStatus.SUCCESS
        assert result.updated == 10
        assert len(memory_store.imports) == 2

    def test_failed_import_does_not_block_resubmission(self, pipeline, memory_store, crew):
        content = build_workbook([labor_row(n) for n in EMPLOYEES])
        memory_store.fail("insert_detail_lines", times=1)
        first = pipeline.run(submit(content))

        second = pipeline.run(submit(content))

        assert first.status is ImportStatus.FAILED
        assert second.status is ImportStatus.SUCCESS


@pytest.mark.unit
class TestRowDiagnostics:
    """Rows that are dropped while the run continues"""

    def test_new_worker_becomes_zero_rate_placeholder(self, pipeline, memory_store, crew):
        rows = [labor_row(n) for n in EMPLOYEES] + [labor_row("T2005", name="Lachance, Cory")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.SUCCESS
        assert result.imported == 10
        assert result.skipped == 1
        assert result.new_employees_created == 1
        assert result.zero_rate_employees == 1
        [warning] = result.errors
        assert warning.code == DiagnosticCode.ZERO_RATE
        assert warning.severity == "warning"

        placeholder = memory_store.workers["T2005"]
        assert placeholder.base_rate == Decimal("0")
        assert (placeholder.first_name, placeholder.last_name) == ("Cory", "Lachance")
        batch = memory_store.imports[result.import_id]
        assert batch.metadata["newEmployees"][0]["employee_number"] == "T2005"

    def test_new_worker_without_name_is_skipped(self, pipeline, memory_store, crew):
        rows = [labor_row(n) for n in EMPLOYEES] + [labor_row("T2006", name="")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.success is True
        assert result.status is ImportStatus.PARTIAL
        assert result.imported == 10
        assert result.skipped == 1
        assert result.errors[0].code == DiagnosticCode.MISSING_NAME
        assert "T2006" not in memory_store.workers

    def test_unknown_craft_code_defaults_to_direct(self, pipeline, memory_store, crew):
        rows = [labor_row(EMPLOYEES[0]), labor_row("T2007", name="Roe, Jan", craft="WELD")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert memory_store.workers["T2007"].category is LaborCategory.DIRECT
        assert memory_store.imports[result.import_id].metadata["unknown_craft_codes"] == ["WELD"]

    def test_craft_prefix_sets_category(self, pipeline, memory_store, crew):
        rows = [labor_row(EMPLOYEES[0]), labor_row("T2008", name="Poe, Ed", craft="STA-PM")]

        pipeline.run(submit(build_workbook(rows)))

        assert memory_store.workers["T2008"].category is LaborCategory.STAFF

    def test_invalid_new_worker_is_rejected(self, pipeline, memory_store, crew):
        too_long = "T" + "9" * 40
        rows = [labor_row(EMPLOYEES[0]), labor_row(too_long, name="Doe, Jane")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.PARTIAL
        assert (result.imported, result.skipped) == (1, 1)
        [error] = result.errors
        assert error.code == DiagnosticCode.INVALID_WORKER
        assert error.field == "employee_number"
        assert error.row == 11
        assert too_long not in memory_store.workers

    def test_unknown_craft_code_is_a_warning(self, pipeline, crew):
        rows = [labor_row(EMPLOYEES[0]), labor_row("T2007", name="Roe, Jan", craft="WELD")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.SUCCESS
        codes = {e.code: e.severity for e in result.errors}
        assert codes[DiagnosticCode.UNKNOWN_CRAFT_CODE] == "warning"

    def test_repeated_worker_is_rejected(self, pipeline, crew):
        rows = [labor_row(EMPLOYEES[0]), labor_row(EMPLOYEES[0], st=8)]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.PARTIAL
        assert result.imported == 1
        assert result.errors[0].code == DiagnosticCode.DUPLICATE_ROW
        assert result.errors[0].row == 11

    def test_day_over_cap_makes_partial(self, pipeline, memory_store, crew):
        rows = [labor_row(n) for n in EMPLOYEES[:9]]
        rows.append(labor_row(EMPLOYEES[9], daily=[17, 9, 9, 9, 0, 0, 0]))

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.status is ImportStatus.PARTIAL
        assert (result.imported, result.skipped) == (9, 1)
        [error] = result.errors
        assert error.code == DiagnosticCode.DAILY_HOURS_EXCEEDED
        assert error.field == "monday"
        assert error.row == 19
        assert len(memory_store.detail_lines) == 9

    def test_threshold_failure_keeps_written_lines(self, memory_store, project):
        numbers = [f"T{3000 + i}" for i in range(50)]
        for number in numbers:
            memory_store.add_worker(make_worker(number))
        rows = [
            labor_row(number, daily=[17, 9, 9, 9, 0, 0, 0]) if i < 6 else labor_row(number)
            for i, number in enumerate(numbers)
        ]

        imported_before = metrics.REGISTRY.get_sample_value("labor_import_rows_total", {"outcome": "imported"}) or 0

        result = LaborImportPipeline(memory_store).run(submit(build_workbook(rows)))

        assert result.success is False
        assert result.status is ImportStatus.FAILED
        assert result.error_kind is ErrorKind.THRESHOLD
        assert result.imported == 0
        assert len(result.errors) == 6
        assert len(memory_store.detail_lines) == 44
        batch = memory_store.imports[result.import_id]
        assert batch.status is ImportStatus.FAILED
        assert batch.imported == 44
        imported_after = metrics.REGISTRY.get_sample_value("labor_import_rows_total", {"outcome": "imported"})
        assert imported_after == imported_before + 44

    def test_only_zero_rate_rows_fails(self, pipeline):
        rows = [labor_row("T4001", name="Lachance, Cory")]

        result = pipeline.run(submit(build_workbook(rows)))

        assert result.success is False
        assert result.status is ImportStatus.FAILED
        assert result.error == "No labor records were imported"
        assert result.errors[-1].code == DiagnosticCode.NO_HOURS


@pytest.mark.unit
class TestFileRejection:
    """Terminal format and metadata errors"""

    def test_unreadable_bytes(self, pipeline, memory_store):
        result = pipeline.run(submit(b"definitely not a workbook"))

        assert result.status is ImportStatus.FAILED
        assert result.error_kind is ErrorKind.FORMAT
        assert memory_store.imports == {}

    def test_missing_sheet(self, pipeline, crew):
        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])], sheet_name="Summary")))

        assert result.error_kind is ErrorKind.FORMAT
        assert "DOW" in result.error

    def test_bad_header(self, pipeline, crew):
        content = build_workbook([labor_row(EMPLOYEES[0])], header={5: "Tue", 12: "StHours"})

        result = pipeline.run(submit(content))

        assert result.error_kind is ErrorKind.FORMAT
        assert "Invalid file format" in result.error

    def test_unknown_job_number(self, pipeline, memory_store, crew):
        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])], job_cell="9999 Elsewhere")))

        assert result.error_kind is ErrorKind.METADATA
        assert result.import_id is None
        assert memory_store.imports == {}

    def test_job_number_mismatch_records_failed_import(self, pipeline, memory_store, project, crew):
        content = build_workbook([labor_row(EMPLOYEES[0])], job_cell="6001 Other Job")

        result = pipeline.run(submit(content, project_id=project.project_id))

        assert result.error_kind is ErrorKind.METADATA
        assert "Job number mismatch" in result.error
        assert result.project_id == project.project_id
        batch = memory_store.imports[result.import_id]
        assert batch.status is ImportStatus.FAILED
        assert batch.metadata["file_job_number"] == "6001"
        assert batch.week_ending == WEEK_ENDING
        assert result.week_ending == WEEK_ENDING
        assert memory_store.detail_lines == {}

    def test_unknown_project_selection(self, pipeline, crew):
        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])]), project_id=uuid4()))

        assert result.error_kind is ErrorKind.METADATA
        assert result.import_id is None

    def test_bad_week_cell(self, pipeline, memory_store, crew):
        result = pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])], week_cell="next week")))

        assert result.error_kind is ErrorKind.METADATA
        assert memory_store.imports[result.import_id].error_message == "Invalid week ending date in file"

    def test_backend_failure_during_lookup_propagates(self, pipeline, memory_store, crew):
        memory_store.fail("find_project_by_job_number")

        with pytest.raises(PersistenceError):
            pipeline.run(submit(build_workbook([labor_row(EMPLOYEES[0])])))


@pytest.mark.unit
class TestRunMany:
    """Tests for LaborImportPipeline.run_many"""

    def test_results_follow_submission_order(self, pipeline, memory_store, crew):
        submissions = [
            submit(build_workbook([labor_row(n) for n in EMPLOYEES]), name="week3.xlsx"),
            submit(b"garbage", name="broken.xlsx"),
            submit(
                build_workbook([labor_row(n) for n in EMPLOYEES[:5]], week_cell=WEEK_SERIAL + 7),
                name="week4.xlsx",
            ),
        ]

        results = pipeline.run_many(submissions, max_workers=3)

        assert [r.status for r in results] == [ImportStatus.SUCCESS, ImportStatus.FAILED, ImportStatus.SUCCESS]
        assert results[0].week_ending == WEEK_ENDING
        assert results[1].error_kind is ErrorKind.FORMAT
        assert results[2].week_ending == WEEK_ENDING + timedelta(days=7)
        assert results[2].imported == 5
        assert len(memory_store.detail_lines) == 15

    def test_backend_failure_fails_only_that_file(self, pipeline, memory_store, crew):
        memory_store.fail("find_project_by_job_number", times=1)
        submissions = [
            submit(build_workbook([labor_row(n) for n in EMPLOYEES]), name="week3.xlsx"),
            submit(
                build_workbook([labor_row(n) for n in EMPLOYEES], week_cell=WEEK_SERIAL + 7),
                name="week4.xlsx",
            ),
        ]

        results = pipeline.run_many(submissions, max_workers=1)

        assert results[0].status is ImportStatus.FAILED
        assert results[0].error_kind is ErrorKind.PERSISTENCE
        assert "injected" in results[0].error
        assert results[1].status is ImportStatus.SUCCESS
        assert results[1].imported == 10

    def test_empty(self, pipeline):
        assert pipeline.run_many([]) == []


@pytest.mark.unit
class TestRunningAverages:
    """Running averages refreshed by successive weekly imports"""

    def test_two_weeks_are_averaged(self, pipeline, memory_store, project, crew):
        pipeline.run(submit(build_workbook([labor_row(n) for n in EMPLOYEES])))
        pipeline.run(submit(
            build_workbook([labor_row(n) for n in EMPLOYEES[:5]], week_cell=WEEK_SERIAL + 7),
            name="week4.xlsx",
        ))

        average = memory_store.fetch_running_averages(project.project_id)[LaborCategory.DIRECT]
        assert average.week_count == 2
        assert average.avg_hours == Decimal("337.50")
        assert average.avg_cost == Decimal("10687.50")
        assert average.last_week_ending == WEEK_ENDING + timedelta(days=7)

    def test_failed_import_leaves_averages_alone(self, pipeline, memory_store, project, crew):
        memory_store.fail("insert_detail_lines")

        pipeline.run(submit(build_workbook([labor_row(n) for n in EMPLOYEES])))

        assert memory_store.fetch_running_averages(project.project_id) == {}
