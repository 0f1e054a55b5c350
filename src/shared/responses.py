"""Response envelope shared by service endpoints: ``{"statusKey", "data"}``."""

from enum import Enum
from typing import Any


class StatusKey(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    UNCHANGED = "unChanged"
    PENDING = "pending"


def build_base_response(status_key: StatusKey, data: Any) -> dict:
    return {"statusKey": status_key.value, "data": data}
