from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    message: str


class ImageEvent(_Event):
    type: Literal["image"] = "image"
    step: int
    image_data: str
    message: str


class EvaluationEvent(_Event):
    type: Literal["evaluation"] = "evaluation"
    step: int
    feedback: str


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    final_image: str
    is_approved: bool
    message: str
    total_cost: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


RefinementEvent = Union[StatusEvent, ImageEvent, EvaluationEvent, CompleteEvent, ErrorEvent]

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})
