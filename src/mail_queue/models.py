"""
Pydantic data models for queued mail records.

The wire shape uses the key ``from``; in Python the field is ``sender``.
"""

from pydantic import BaseModel, ConfigDict, Field, validator


class InboundEmail(BaseModel):
    """One inbound message, as delivered to the webhook."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    to: str
    subject: str = ""
    text: str = ""
    html: str = ""

    @validator("sender", "to")
    def _strip_address(cls, v):
        return v.strip()

    def payload(self) -> dict:
        """JSON body sent downstream: ``{from, to, subject, text, html}``."""
        return self.model_dump(by_alias=True)
