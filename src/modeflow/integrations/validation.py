"""Parameter validation against pydantic schemas."""

import json
import logging
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from modeflow.core.errors import InvalidParametersError


logger = logging.getLogger(__name__)


class ParameterValidator(Protocol):
    """Validates raw arguments against a parameter schema."""

    def validate(self, schema: type[BaseModel], raw_arguments: Any) -> BaseModel:
        ...


class PydanticParameterValidator:
    """Validates arguments with ``schema.model_validate``.

    Accepts a dict, a JSON object string, None (treated as no arguments),
    or an instance of the schema itself.
    """

    def validate(self, schema: type[BaseModel], raw_arguments: Any) -> BaseModel:
        if isinstance(raw_arguments, schema):
            return raw_arguments

        if raw_arguments is None:
            raw_arguments = {}
        elif isinstance(raw_arguments, str):
            try:
                raw_arguments = json.loads(raw_arguments) if raw_arguments.strip() else {}
            except json.JSONDecodeError as e:
                raise InvalidParametersError(
                    f"Arguments for {schema.__name__} are not valid JSON: {e}",
                    details={"schema": schema.__name__},
                ) from e
        elif isinstance(raw_arguments, BaseModel):
            raw_arguments = raw_arguments.model_dump()

        try:
            return schema.model_validate(raw_arguments)
        except ValidationError as e:
            logger.debug(f"Validation against {schema.__name__} failed: {e}")
            raise InvalidParametersError(
                f"Invalid arguments for {schema.__name__}",
                details={
                    "schema": schema.__name__,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            ) from e
