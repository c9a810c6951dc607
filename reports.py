"""
Admin reporting: every job with its applications, as JSON or CSV.
"""

import csv
import io

from models import Application, Job

CSV_HEADER = [
    "Job Title",
    "Company",
    "Location",
    "Applicant Name",
    "Email",
    "Resume URL",
    "Applied Date",
    "Status",
]


def jobs_with_applications():
    """
    Group applications under their job.

    Jobs come newest first and keep that order; a job with no applications
    still appears with an empty list. Applications are newest first.

    Returns:
        List of job dicts, each with an "applications" list
    """
    jobs = Job.query.order_by(Job.created_at.desc(), Job.id.desc()).all()
    applications = (
        Application.query
        .order_by(Application.created_at.desc(), Application.id.desc())
        .all()
    )

    grouped = {}
    for job in jobs:
        grouped[job.id] = {**job.to_dict(), "applications": []}

    for application in applications:
        entry = grouped.get(application.job_id)
        if entry is not None:
            entry["applications"].append(application.to_dict())

    return list(grouped.values())


def csv_rows(grouped_jobs):
    """One row per (job, application); a job with no applications gets one row with blank applicant columns."""
    for job in grouped_jobs:
        prefix = [job["title"], job["company"], job["location"]]
        if not job["applications"]:
            yield prefix + [""] * (len(CSV_HEADER) - len(prefix))
            continue
        for application in job["applications"]:
            yield prefix + [
                application["name"],
                application["email"],
                application["resumeUrl"],
                application["createdAt"] or "",
                application["status"],
            ]


def applications_csv(grouped_jobs):
    buffer = io.StringIO()
    # Header stays bare; data fields are always quoted
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(csv_rows(grouped_jobs))
    return buffer.getvalue()
