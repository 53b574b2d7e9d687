"""JSON codec for pyanalytics records."""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyanalytics.exceptions import AnalyticsError

M = TypeVar("M", bound=BaseModel)


class JsonCodec:
    """Serialize pydantic records to camelCase JSON and back."""

    def to_dict(self, model: BaseModel) -> dict[str, Any]:
        return model.model_dump(mode="json", by_alias=True)

    def encode(self, model: BaseModel) -> str:
        try:
            data = self.to_dict(model)
        except ValueError as exc:  # PydanticSerializationError
            raise AnalyticsError(f"Could not encode {type(model).__name__}: {exc}") from exc
        return json.dumps(data, separators=(",", ":"))

    def decode(self, text: str, model_type: type[M]) -> M:
        try:
            return model_type.model_validate_json(text)
        except ValidationError as exc:
            raise AnalyticsError(f"Could not decode {model_type.__name__}: {exc}") from exc
