"""orjson encoding for API responses and notification payloads."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import orjson
from fastapi.responses import JSONResponse

_OPTIONS = orjson.OPT_NON_STR_KEYS


def _encode_extra(obj: Any) -> Any:
    # Coin amounts leave the service as strings so no float rounding creeps in
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Cannot encode {type(obj).__name__} as JSON")


def json_dumps(data: Any) -> str:
    return orjson.dumps(data, default=_encode_extra, option=_OPTIONS).decode()


class ORJSONResponse(JSONResponse):
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=_encode_extra, option=_OPTIONS)
