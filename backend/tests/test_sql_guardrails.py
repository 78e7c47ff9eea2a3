"""
SQL Guardrail Tests

These tests prevent SQL parameter style regressions and enforce best practices:
1. No %(name)s psycopg2-style params in backend code
2. Date params must be Python date objects, not strings
3. Every :placeholder has a param

Run with: pytest tests/test_sql_guardrails.py -v
"""
import re
import pytest
from datetime import date, datetime
from pathlib import Path

from db.sql import (
    validate_sql_text,
    validate_params,
    validate_sql_params,
    extract_param_names,
    run_sql,
    run_sql_scalar,
    run_sql_one,
    SQLParamStyleError,
    SQLDateParamError,
)


# =============================================================================
# GUARDRAIL: No psycopg2-style %(name)s params in backend code
# =============================================================================

class TestNoLegacyParamStyle:
    """Ensure no %(name)s style params exist in backend SQL."""

    PSYCOPG2_PATTERN = re.compile(r'%\([a-zA-Z_][a-zA-Z0-9_]*\)s')

    BACKEND_ROOT = Path(__file__).parent.parent

    SCAN_DIRS = ['routes', 'services', 'api']

    def get_python_files(self):
        files = []
        for scan_dir in self.SCAN_DIRS:
            dir_path = self.BACKEND_ROOT / scan_dir
            if dir_path.exists():
                files.extend(dir_path.rglob('*.py'))
        return files

    def test_no_psycopg2_params_in_backend(self):
        """
        GUARDRAIL: Detect and fail if %(name)s style params are used.

        All SQL should use :name SQLAlchemy bind params.
        """
        violations = []

        for filepath in self.get_python_files():
            content = filepath.read_text(encoding='utf-8')
            for i, line in enumerate(content.split('\n'), 1):
                if self.PSYCOPG2_PATTERN.search(line):
                    violations.append(f"{filepath.relative_to(self.BACKEND_ROOT)}:{i}  {line.strip()[:100]}")

        if violations:
            pytest.fail(
                "GUARDRAIL VIOLATION: Found psycopg2-style %(name)s params!\n\n"
                + "\n".join(violations)
            )


# =============================================================================
# SQL HELPER VALIDATION TESTS
# =============================================================================

class TestSqlTextValidation:
    """Test SQL text validation catches bad param styles."""

    def test_valid_sqlalchemy_params(self):
        """Valid :name params should pass."""
        validate_sql_text("""
            SELECT SUM(total) FROM orders
            WHERE gateway = :gateway
              AND orders.date_created >= :date_start
        """)

    def test_rejects_psycopg2_params(self):
        """%(name)s params should be rejected."""
        sql = "SELECT SUM(total) FROM orders WHERE gateway = %(gateway)s"
        with pytest.raises(SQLParamStyleError) as exc:
            validate_sql_text(sql)

        assert '%(gateway)s' in str(exc.value)


class TestParamValidation:
    """Test parameter validation catches bad date types."""

    def test_valid_date_params(self):
        """Python date/datetime objects should pass."""
        validate_params({
            'date_start': datetime(2024, 1, 1),
            'date_end': date(2024, 12, 31),
            'gateway': 'stripe',
        })

    def test_rejects_string_date(self):
        """String date_start should be rejected."""
        with pytest.raises(SQLDateParamError) as exc:
            validate_params({'date_start': '2024-01-01'})

        assert 'date_start' in str(exc.value)
        assert 'string' in str(exc.value).lower()

    def test_rejects_numeric_date(self):
        """Epoch numbers are not dates."""
        with pytest.raises(SQLDateParamError):
            validate_params({'refund_date': 1704067200})

    def test_none_date_allowed(self):
        """None is allowed (no bound)."""
        validate_params({'date_end': None})


class TestPlaceholderValidation:
    """Test placeholder/param matching."""

    def test_extracts_names_not_casts(self):
        """::numeric casts are not placeholders."""
        sql = "SELECT SUM(total)::numeric FROM orders WHERE gateway = :gateway AND id > :min_id"
        assert extract_param_names(sql) == ['gateway', 'min_id']

    def test_missing_param_raises(self):
        """A placeholder without a param fails fast."""
        with pytest.raises(ValueError) as exc:
            validate_sql_params("SELECT 1 WHERE gateway = :gateway", {})

        assert 'gateway' in str(exc.value)

    def test_unused_param_warns(self, caplog):
        """Extra params only log a warning."""
        with caplog.at_level('WARNING', logger='stats.sql'):
            validate_sql_params("SELECT 1", {'gateway': 'stripe'})

        assert 'Unused params' in caplog.text


class TestRunSql:
    """Test the execution helpers against a fake session."""

    def test_run_sql_scalar_returns_first_column(self, fake_session):
        fake_session.queue_scalar(42)

        assert run_sql_scalar(fake_session, "SELECT COUNT(id) FROM orders") == 42

    def test_run_sql_scalar_empty_is_none(self, fake_session):
        assert run_sql_scalar(fake_session, "SELECT COUNT(id) FROM orders") is None

    def test_run_sql_one_and_rows(self, fake_session, make_row):
        session = fake_session
        session.queue(make_row(gateway='stripe', value=3), make_row(gateway='paypal', value=1))
        session.queue(make_row(total=10, discounted_orders=2))

        rows = run_sql(session, "SELECT gateway, COUNT(id) AS value FROM orders GROUP BY gateway")
        row = run_sql_one(session, "SELECT 1")

        assert [r.gateway for r in rows] == ['stripe', 'paypal']
        assert row.discounted_orders == 2

    def test_params_are_passed_through(self, fake_session):
        session = fake_session
        start = datetime(2024, 1, 1)

        run_sql_scalar(session, "SELECT 1 FROM orders WHERE date_created >= :date_start", date_start=start)

        assert session.last_params == {'date_start': start}

    def test_validation_runs_before_execute(self, fake_session):
        session = fake_session

        with pytest.raises(ValueError):
            run_sql(session, "SELECT 1 WHERE id = :id")

        assert session.calls == []

    def test_validation_can_be_skipped(self, fake_session):
        session = fake_session

        run_sql(session, "SELECT 1 WHERE id = :id", validate=False)

        assert len(session.calls) == 1
