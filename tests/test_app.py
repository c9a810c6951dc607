"""
Tests for app setup: config, error responses and CLI commands.
"""

from app import create_app
from config import database_url
from models import Job, User, db


class TestDatabaseUrl:
    """Test DATABASE_URL handling."""

    def test_fallback_to_sqlite(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert database_url() == "sqlite:///job_board.db"

    def test_postgres_scheme_is_rewritten(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/jobs")
        assert database_url() == "postgresql://u:p@db:5432/jobs"


class TestCreateApp:
    """Test the application factory."""

    def test_demo_employer_is_created(self, app):
        employer = db.session.get(User, app.config["DEMO_EMPLOYER_ID"])
        assert employer is not None
        assert employer.role == "employer"

    def test_dict_overrides(self):
        app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "DEMO_EMPLOYER_ID": 7,
        })
        with app.app_context():
            assert db.session.get(User, 7).role == "employer"
            db.drop_all()

    def test_unknown_api_route_is_json_404(self, client):
        resp = client.get("/api/nothing-here")

        assert resp.status_code == 404
        assert "message" in resp.get_json()

    def test_wrong_method_is_json_405(self, client):
        resp = client.patch("/api/jobs")

        assert resp.status_code == 405
        assert "message" in resp.get_json()


class TestCliCommands:
    """Test flask CLI commands."""

    def test_init_db(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.output

    def test_seed_jobs(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["seed-jobs", "--deadline", "2031-01-15"])

        assert result.exit_code == 0
        assert Job.query.count() == 3
        assert {job.deadline.year for job in Job.query.all()} == {2031}
