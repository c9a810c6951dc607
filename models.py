from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.ext.orderinglist import ordering_list

db = SQLAlchemy()

USER_ROLES = ("applicant", "employer", "admin")
APPLICATION_STATUSES = ("pending", "reviewed", "rejected")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    role = db.Column(
        db.Enum(*USER_ROLES, name="user_role", native_enum=False, validate_strings=True),
        nullable=False,
        default="applicant",
    )
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationship: an employer can post many jobs
    jobs_posted = db.relationship("Job", backref="employer", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "createdAt": isoformat(self.created_at),
        }


class JobTag(db.Model):
    __tablename__ = "job_tags"

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(
        db.Integer, db.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(100), nullable=False, index=True)


class Job(db.Model):
    __tablename__ = "jobs"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    salary = db.Column(db.Integer, nullable=False)
    location = db.Column(db.String(200), nullable=False)
    deadline = db.Column(db.DateTime, nullable=False)
    employer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    company = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    # Tag rows are kept in list order and replaced as a whole
    tag_rows = db.relationship(
        "JobTag",
        order_by=JobTag.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    # Relationship: a job can have many applications, removed with the job
    applications = db.relationship(
        "Application",
        backref="job",
        lazy=True,
        cascade="all, delete-orphan",
    )

    @property
    def tags(self):
        return [tag.name for tag in self.tag_rows]

    @tags.setter
    def tags(self, names):
        self.tag_rows = [JobTag(name=name, position=i) for i, name in enumerate(names)]

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "salary": self.salary,
            "location": self.location,
            "deadline": isoformat(self.deadline),
            "tags": self.tags,
            "employerId": self.employer_id,
            "company": self.company,
            "createdAt": isoformat(self.created_at),
        }


class Application(db.Model):
    __tablename__ = "applications"

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(
        db.Integer, db.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    resume_url = db.Column(db.String(500), nullable=False)
    cover_letter = db.Column(db.Text, nullable=False)
    status = db.Column(
        db.Enum(*APPLICATION_STATUSES, name="application_status", native_enum=False,
                validate_strings=True),
        nullable=False,
        default="pending",
    )
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "jobId": self.job_id,
            "name": self.name,
            "email": self.email,
            "resumeUrl": self.resume_url,
            "coverLetter": self.cover_letter,
            "status": self.status,
            "createdAt": isoformat(self.created_at),
        }
