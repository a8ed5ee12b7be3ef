"""
Questionnaire response as supplied by the questionnaire system.
"""
from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field


Answer = Union[bool, int, float, str, list[Union[bool, int, float, str]], None]


class QuestionnaireResponse(BaseModel):
    id: str
    template_id: str = Field(description="Questionnaire template the response was given for")
    responses: dict[str, Answer] = Field(default_factory=dict, description="question id → answer")


class ScreeningRequest(BaseModel):
    """
    POST /v1/tenants/{tenant_id}/screening/evaluate

    template_id overrides the template resolved from the questionnaire.
    """
    response: QuestionnaireResponse
    template_id: Optional[str] = None
    lead_id: Optional[str] = None
