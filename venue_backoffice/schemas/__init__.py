from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from venue_backoffice.services.errors import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: Type[ModelT], data: Any) -> ModelT:
    """Validate a raw JSON payload, raising ValidationFailed before any backend call."""
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object.")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "body"
            problems.append(f"{field}: {error.get('msg')}")
        raise ValidationFailed("Invalid payload: " + "; ".join(problems))
