"""Tenancy schemas"""

from pydantic import BaseModel, field_validator


class CustomDomainRequest(BaseModel):
    domain: str

    @field_validator("domain")
    @classmethod
    def normalize(cls, v):
        v = v.strip().lower()
        for prefix in ("https://", "http://"):
            if v.startswith(prefix):
                v = v[len(prefix):]
        return v.split("/", 1)[0]
