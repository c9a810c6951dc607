"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import Application, Job, User, db


@pytest.fixture
def app():
    """Application bound to a fresh in-memory database."""
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def employer(app) -> User:
    """The demo employer created at startup."""
    return db.session.get(User, app.config["DEMO_EMPLOYER_ID"])


@pytest.fixture
def valid_job_payload():
    """Valid job body as sent by the post-job form."""
    return {
        "title": "Senior Software Engineer",
        "description": "Work on our hiring platform.",
        "salary": 120000,
        "location": "Remote",
        "deadline": "2030-06-30",
        "tags": ["Python", "Flask"],
        "company": "Acme Corp",
    }


@pytest.fixture
def valid_application_payload():
    """Valid application body; jobId is filled in by the test."""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "resumeUrl": "https://example.com/jane.pdf",
        "coverLetter": "I would love to join your team.",
    }


@pytest.fixture
def make_job(employer):
    """Insert a job; each call is one minute newer than the previous one."""
    base = datetime(2025, 1, 1)
    counter = {"n": 0}

    def _make_job(**overrides):
        counter["n"] += 1
        data = {
            "title": f"Job {counter['n']}",
            "description": "A job description.",
            "salary": 50000,
            "location": "Remote",
            "deadline": datetime(2030, 1, 1),
            "tags": ["General"],
            "company": "Acme Corp",
            "employer_id": employer.id,
            "created_at": base + timedelta(minutes=counter["n"]),
        }
        data.update(overrides)
        job = Job(**data)
        db.session.add(job)
        db.session.commit()
        return job

    return _make_job


@pytest.fixture
def make_application():
    """Insert an application for a job."""
    counter = {"n": 0}

    def _make_application(job, **overrides):
        counter["n"] += 1
        data = {
            "job_id": job.id,
            "name": f"Applicant {counter['n']}",
            "email": f"applicant{counter['n']}@example.com",
            "resume_url": f"https://example.com/resume-{counter['n']}.pdf",
            "cover_letter": "Please consider my application.",
            "created_at": datetime(2025, 2, 1) + timedelta(minutes=counter["n"]),
        }
        data.update(overrides)
        application = Application(**data)
        db.session.add(application)
        db.session.commit()
        return application

    return _make_application
