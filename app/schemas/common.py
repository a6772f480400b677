# app/schemas/common.py
"""Shared schema base and the `{success, data}` response envelope"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (contractId, amountCollected, ...)"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def dump(model: Optional[BaseModel]) -> Any:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)


def success_response(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    body.update(extra)
    body["data"] = data
    return body


def error_response(message: str, **extra) -> dict:
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body
