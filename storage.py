"""
Persistence operations for users, jobs and applications.

Functions here return models (or None / False for missing rows) and leave
HTTP concerns to the route handlers. SQLAlchemy errors propagate.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_
from werkzeug.security import generate_password_hash

from models import Application, Job, JobTag, User, db


@dataclass
class JobFilters:
    """Optional listing criteria: AND between criteria, OR within tags."""

    location: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    search: Optional[str] = None

    def clauses(self) -> list:
        conditions = []

        if self.location:
            conditions.append(Job.location.icontains(self.location, autoescape=True))

        if self.tags:
            conditions.append(Job.tag_rows.any(JobTag.name.in_(self.tags)))

        if self.search:
            conditions.append(or_(
                Job.title.icontains(self.search, autoescape=True),
                Job.description.icontains(self.search, autoescape=True),
                Job.company.icontains(self.search, autoescape=True),
            ))

        return conditions

    @classmethod
    def from_args(cls, location=None, tags=None, search=None) -> "JobFilters":
        """Build filters from raw query-string values; blanks mean no filter."""
        tag_list = [t.strip() for t in (tags or "").split(",") if t.strip()]
        return cls(
            location=(location or "").strip() or None,
            tags=tag_list,
            search=(search or "").strip() or None,
        )


# ================= USERS =================
def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def get_user_by_username(username: str) -> Optional[User]:
    return User.query.filter_by(username=username).first()


def create_user(
    username: str, password: str, role: str = "applicant", user_id: Optional[int] = None
) -> User:
    user = User(
        id=user_id,
        username=username,
        password=generate_password_hash(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


# ================= JOBS =================
def list_jobs(
    filters: Optional[JobFilters] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[Job], int]:
    """
    Return one page of matching jobs, newest first, and the total match count.

    Args:
        filters: Listing criteria (None means every job)
        limit: Page size; None returns every match
        offset: Number of matches to skip

    Returns:
        (jobs, total) where total ignores limit and offset
    """
    conditions = (filters or JobFilters()).clauses()
    predicate = and_(*conditions) if conditions else None

    query = Job.query
    if predicate is not None:
        query = query.filter(predicate)

    total = query.order_by(None).count()

    query = query.order_by(Job.created_at.desc(), Job.id.desc())
    if limit is not None:
        query = query.limit(limit)
    if offset:
        query = query.offset(offset)

    return query.all(), total


def get_job(job_id: int) -> Optional[Job]:
    return db.session.get(Job, job_id)


def create_job(job: Job, employer_id: int) -> Job:
    job.employer_id = employer_id
    db.session.add(job)
    db.session.commit()
    return job


def update_job(job: Job) -> Job:
    db.session.commit()
    return job


def delete_job(job_id: int) -> bool:
    job = get_job(job_id)
    if job is None:
        return False
    db.session.delete(job)
    db.session.commit()
    return True


def jobs_by_employer(employer_id: int) -> List[Job]:
    return (
        Job.query
        .filter_by(employer_id=employer_id)
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )


# ================= APPLICATIONS =================
def create_application(application: Application) -> Application:
    application.status = "pending"
    db.session.add(application)
    db.session.commit()
    return application


def applications_for_job(job_id: int) -> List[Application]:
    return (
        Application.query
        .filter_by(job_id=job_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .all()
    )


def count_applications(job_id: int) -> int:
    return Application.query.filter_by(job_id=job_id).count()


def application_counts(job_ids: List[int]) -> Dict[int, int]:
    """Application count per job id; jobs without applications map to 0."""
    if not job_ids:
        return {}
    rows = (
        db.session.query(Application.job_id, func.count(Application.id))
        .filter(Application.job_id.in_(job_ids))
        .group_by(Application.job_id)
        .all()
    )
    counts = {job_id: 0 for job_id in job_ids}
    counts.update({job_id: count for job_id, count in rows})
    return counts
