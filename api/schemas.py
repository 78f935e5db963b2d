"""
Request and response bodies for the HTTP API.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class JobCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    min_salary: float = Field(0, ge=0)
    max_salary: float = Field(0, ge=0)
    company: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_salary_range(self) -> "JobCreateRequest":
        if self.min_salary > self.max_salary:
            raise ValueError("min_salary must not exceed max_salary")
        return self


class JobResponse(BaseModel):
    id: str
    title: str
    description: str
    min_salary: float
    max_salary: float
    company: str
    created_at: Optional[str] = None


class JobApplicationRequest(BaseModel):
    candidate_name: str
    candidate_email: str


class JobApplicationSubmitted(BaseModel):
    id: str
    job_id: str
    notification_enqueued: bool


class JobApplicationResponse(BaseModel):
    id: str
    job_id: str
    candidate_name: str
    candidate_email: str
    resume_key: Optional[str] = None
    notification_enqueued: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ResumeUploaded(BaseModel):
    application_id: str
    resume_key: str
