"""Reason — machine-readable explanation attached to every blocking condition."""

from typing import List

from pydantic import BaseModel


class Reason(BaseModel):
    code: str                         # e.g. "plan_not_approved", "mutual_exclusion"
    message: str                      # Human-readable
    capability_ids: List[str] = []
