from datetime import datetime, timezone

from flask_wtf import FlaskForm
from wtforms import Field, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, StopValidation, URL


MAX_ROW_ID = 2**63 - 1
MAX_SALARY = 2**31 - 1


def strip_text(value):
    return value.strip() if isinstance(value, str) else value


class Provided:
    """The key must be present in the request body; falsy values like 0 pass."""

    def __init__(self, message):
        self.message = message

    def __call__(self, form, field):
        if not field.raw_data:
            raise StopValidation(self.message)


class JsonStringMixin:
    """Reject non-string JSON values instead of passing them to validators."""

    def process_formdata(self, valuelist):
        if valuelist:
            value = valuelist[0]
            if value is None:
                self.data = ""
            elif not isinstance(value, str):
                self.data = ""
                raise ValueError(self.gettext("Not a valid string."))
            else:
                self.data = value


class JsonStringField(JsonStringMixin, StringField):
    pass


class JsonTextAreaField(JsonStringMixin, TextAreaField):
    pass


class JsonIntegerField(IntegerField):
    """Accepts JSON integers only; floats, strings, booleans and null are rejected."""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if not isinstance(value, int) or isinstance(value, bool):
            self.data = None
            raise ValueError(self.gettext("Not a valid integer value."))
        self.data = value


class DeadlineField(Field):
    """ISO-8601 date or datetime; aware values are stored as naive UTC."""

    def _value(self):
        return self.data.isoformat() if self.data else ""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        raw = valuelist[0]
        self.data = None
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError(self.gettext("Deadline is required"))
        try:
            value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(self.gettext("Not a valid date")) from None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        self.data = value


class TagListField(Field):
    """Ordered list of tag names, blanks dropped."""

    def _value(self):
        return ",".join(self.data or [])

    def process_data(self, value):
        self.data = list(value) if value else []

    def process_formdata(self, valuelist):
        tags = []
        for item in valuelist:
            if not isinstance(item, str):
                raise ValueError(self.gettext("Tags must be strings"))
            if item.strip():
                tags.append(item.strip())
        self.data = tags


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    def error_list(self):
        """Field errors keyed by the JSON name the client sent."""
        return [
            {"field": field.name, "message": message}
            for field in self
            for message in field.errors
        ]


class JobForm(ApiForm):
    title = JsonStringField("Job Title", filters=[strip_text],
                            validators=[DataRequired("Job title is required")])
    description = JsonTextAreaField("Job Description", filters=[strip_text],
                                    validators=[DataRequired("Job description is required")])
    salary = JsonIntegerField("Salary", validators=[
        Provided("Salary is required"),
        NumberRange(min=1, message="Salary must be greater than 0"),
        NumberRange(max=MAX_SALARY, message="Salary is too large"),
    ])
    location = JsonStringField("Location", filters=[strip_text],
                               validators=[DataRequired("Location is required")])
    deadline = DeadlineField("Deadline", validators=[Provided("Deadline is required")])
    tags = TagListField("Tags", validators=[Length(min=1, message="At least one tag is required")])
    company = JsonStringField("Company", filters=[strip_text],
                              validators=[DataRequired("Company name is required")])

    def populate_job(self, job):
        job.title = self.title.data
        job.description = self.description.data
        job.salary = self.salary.data
        job.location = self.location.data
        job.deadline = self.deadline.data
        job.tags = self.tags.data
        job.company = self.company.data
        return job


class ApplicationForm(ApiForm):
    job_id = JsonIntegerField("Job", name="jobId", validators=[
        Provided("Job is required"),
        NumberRange(min=1, max=MAX_ROW_ID, message="Job does not exist"),
    ])
    name = JsonStringField("Name", filters=[strip_text],
                           validators=[DataRequired("Name is required")])
    email = JsonStringField("Email", filters=[strip_text],
                            validators=[DataRequired("Email is required"), Email()])
    resume_url = JsonStringField("Resume URL", name="resumeUrl", filters=[strip_text],
                                 validators=[DataRequired("Resume URL is required"), URL()])
    cover_letter = JsonTextAreaField("Cover Letter", name="coverLetter", validators=[
        Length(min=10, message="Cover letter must be at least 10 characters"),
    ])
