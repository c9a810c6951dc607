import math
import os
import sqlite3
import click
from flask import Blueprint, Flask, Response, current_app, jsonify, request, session
from flask.cli import with_appcontext
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException, NotFound

import storage
from config import Config, configure_logging
from forms import ApplicationForm, JobForm
from models import Application, Job, db
from reports import applications_csv, jobs_with_applications

api = Blueprint("api", __name__, url_prefix="/api")


class StorageError(Exception):
    """A persistence failure, reported to the client with a generic message."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def storage_call(message, func, *args, **kwargs):
    """Run a storage operation; on failure roll back, log and raise StorageError."""
    try:
        return func(*args, **kwargs)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("%s: %s", message, func.__name__)
        raise StorageError(message) from None


def validation_error(message, errors):
    return jsonify({"message": message, "errors": errors}), 400


def body_is_object():
    """Forms read JSON bodies as mappings; arrays and scalars cannot be bound."""
    if not request.is_json:
        return True
    return isinstance(request.get_json(silent=True), dict)


BODY_ERRORS = [{"field": "body", "message": "Request body must be a JSON object"}]


def job_not_found():
    raise NotFound("Job not found")


# ================= PRINCIPAL =================
def current_employer_id():
    """Employer for this request: the session user when it is an employer, else the demo employer."""
    if session.get("role") == "employer" and session.get("user_id") is not None:
        return session["user_id"]
    return current_app.config["DEMO_EMPLOYER_ID"]


# ================= JOBS =================
def _page_args():
    errors = []
    values = {}
    defaults = {"page": 1, "limit": current_app.config["DEFAULT_PAGE_SIZE"]}
    for name, default in defaults.items():
        raw = request.args.get(name)
        if raw is None or raw == "":
            values[name] = default
            continue
        try:
            values[name] = int(raw)
        except ValueError:
            errors.append({"field": name, "message": "Not a valid integer value."})
            continue
        if values[name] < 1:
            errors.append({"field": name, "message": "Must be at least 1."})

    max_size = current_app.config["MAX_PAGE_SIZE"]
    if "limit" in values and values["limit"] > max_size:
        errors.append({"field": "limit", "message": f"Must be at most {max_size}."})
    return values, errors


@api.route("/jobs", methods=["GET"])
def list_jobs():
    values, errors = _page_args()
    if errors:
        return validation_error("Invalid query parameters", errors)

    page, limit = values["page"], values["limit"]
    filters = storage.JobFilters.from_args(
        location=request.args.get("location"),
        tags=request.args.get("tags"),
        search=request.args.get("search"),
    )
    jobs, total = storage_call(
        "Failed to fetch jobs",
        storage.list_jobs, filters, limit=limit, offset=(page - 1) * limit,
    )

    return jsonify({
        "jobs": [job.to_dict() for job in jobs],
        "total": total,
        "page": page,
        "totalPages": math.ceil(total / limit),
    })


@api.route("/jobs/<int:job_id>", methods=["GET"])
def get_job(job_id):
    job = storage_call("Failed to fetch job", storage.get_job, job_id)
    if job is None:
        job_not_found()
    return jsonify(job.to_dict())


@api.route("/jobs", methods=["POST"])
def create_job():
    if not body_is_object():
        return validation_error("Invalid job data", BODY_ERRORS)

    form = JobForm()
    if not form.validate_on_submit():
        return validation_error("Invalid job data", form.error_list())

    employer_id = current_employer_id()
    job = storage_call(
        "Failed to create job",
        storage.create_job, form.populate_job(Job()), employer_id,
    )
    current_app.logger.info("Job %s created by employer %s", job.id, employer_id)
    return jsonify(job.to_dict()), 201


@api.route("/jobs/<int:job_id>", methods=["PUT"])
def update_job(job_id):
    if not body_is_object():
        return validation_error("Invalid job data", BODY_ERRORS)

    form = JobForm()
    if not form.validate_on_submit():
        return validation_error("Invalid job data", form.error_list())

    job = storage_call("Failed to update job", storage.get_job, job_id)
    if job is None:
        job_not_found()

    job = storage_call("Failed to update job", storage.update_job, form.populate_job(job))
    current_app.logger.info("Job %s updated", job.id)
    return jsonify(job.to_dict())


@api.route("/jobs/<int:job_id>", methods=["DELETE"])
def delete_job(job_id):
    if not storage_call("Failed to delete job", storage.delete_job, job_id):
        job_not_found()

    current_app.logger.info("Job %s deleted", job_id)
    return jsonify({"message": "Job deleted successfully"})


# ================= EMPLOYER =================
@api.route("/employer/jobs", methods=["GET"])
def employer_jobs():
    message = "Failed to fetch employer jobs"
    jobs = storage_call(message, storage.jobs_by_employer, current_employer_id())
    counts = storage_call(message, storage.application_counts, [job.id for job in jobs])

    return jsonify([
        {**job.to_dict(), "applicationCount": counts[job.id]}
        for job in jobs
    ])


# ================= APPLICATIONS =================
@api.route("/applications", methods=["POST"])
def submit_application():
    message = "Failed to submit application"
    if not body_is_object():
        return validation_error("Invalid application data", BODY_ERRORS)

    form = ApplicationForm()
    if not form.validate_on_submit():
        return validation_error("Invalid application data", form.error_list())

    if storage_call(message, storage.get_job, form.job_id.data) is None:
        return validation_error(
            "Invalid application data", [{"field": "jobId", "message": "Job does not exist"}]
        )

    application = Application(
        job_id=form.job_id.data,
        name=form.name.data,
        email=form.email.data,
        resume_url=form.resume_url.data,
        cover_letter=form.cover_letter.data,
    )
    application = storage_call(message, storage.create_application, application)
    current_app.logger.info(
        "Application %s submitted for job %s", application.id, application.job_id
    )
    return jsonify(application.to_dict()), 201


@api.route("/jobs/<int:job_id>/applications", methods=["GET"])
def job_applications(job_id):
    applications = storage_call(
        "Failed to fetch applications", storage.applications_for_job, job_id
    )
    return jsonify([application.to_dict() for application in applications])


# ================= ADMIN =================
@api.route("/admin/applications", methods=["GET"])
def admin_applications():
    return jsonify(storage_call("Failed to fetch applications", jobs_with_applications))


@api.route("/admin/export/applications", methods=["GET"])
def export_applications():
    grouped = storage_call("Failed to export applications", jobs_with_applications)
    return Response(
        applications_csv(grouped),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=applications.csv"},
    )


# ================= ERRORS =================
@api.errorhandler(StorageError)
def handle_storage_error(error):
    return jsonify({"message": error.message}), 500


def handle_http_error(error):
    if request.path.startswith("/api/") and error.code >= 400:
        return jsonify({"message": error.description}), error.code
    return error.get_response()


# ================= DATABASE =================
@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def ensure_demo_employer(app):
    employer_id = app.config["DEMO_EMPLOYER_ID"]
    employer = storage.get_user(employer_id)
    if employer is None:
        employer = storage.create_user(
            f"employer-{employer_id}", os.urandom(16).hex(), role="employer", user_id=employer_id
        )
        app.logger.info("Created demo employer %s", employer_id)
    return employer


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create tables and the demo employer."""
    db.create_all()
    ensure_demo_employer(current_app)
    click.echo("Database ready")


SAMPLE_JOBS = [
    {
        "title": "Senior Frontend Engineer",
        "description": "Build and maintain our React component library.",
        "salary": 140000,
        "location": "Remote",
        "tags": ["React", "TypeScript"],
        "company": "Acme Corp",
    },
    {
        "title": "Backend Developer",
        "description": "Design REST APIs and relational schemas.",
        "salary": 120000,
        "location": "Berlin, Germany",
        "tags": ["Python", "PostgreSQL"],
        "company": "Globex",
    },
    {
        "title": "Data Analyst",
        "description": "Turn hiring funnel data into weekly reports.",
        "salary": 90000,
        "location": "New York, NY",
        "tags": ["SQL", "Excel"],
        "company": "Initech",
    },
]


@click.command("seed-jobs")
@click.option("--deadline", type=click.DateTime(formats=["%Y-%m-%d"]), default="2030-12-31",
              show_default=True, help="Deadline given to every sample job.")
@with_appcontext
def seed_jobs_command(deadline):
    """Insert a few sample jobs owned by the demo employer."""
    db.create_all()
    employer = ensure_demo_employer(current_app)
    for data in SAMPLE_JOBS:
        job = Job(deadline=deadline, **data)
        storage.create_job(job, employer.id)
    click.echo(f"Inserted {len(SAMPLE_JOBS)} jobs")


# ================= APP =================
def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if isinstance(config_object, dict):
        app.config.update(config_object)
    elif config_object is not None:
        app.config.from_object(config_object)

    if not app.config.get("TESTING"):
        configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    app.register_blueprint(api)
    app.register_error_handler(HTTPException, handle_http_error)
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_jobs_command)

    with app.app_context():
        db.create_all()
        ensure_demo_employer(app)

    return app


# ================= RUN =================
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port)
