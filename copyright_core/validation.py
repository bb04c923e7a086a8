"""
Prompt input validation.
"""

from typing import Any

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from copyright_core.config import DEFAULT_MAX_PROMPT_LENGTH
from copyright_core.errors import InvalidInputError

EMPTY_PROMPT_MESSAGE = "Prompt cannot be empty"


def too_long_message(max_length: int) -> str:
    return f"Prompt is too long (max {max_length} characters)"


class PromptInput(BaseModel):
    """A prompt that passed validation. The length limit comes from validation context."""

    prompt: str

    @field_validator("prompt", mode="before")
    @classmethod
    def _not_empty(cls, value: Any) -> Any:
        if value is None or value == "":
            raise ValueError(EMPTY_PROMPT_MESSAGE)
        if not isinstance(value, str):
            raise ValueError("Prompt must be text")
        return value

    @field_validator("prompt")
    @classmethod
    def _not_too_long(cls, value: str, info: ValidationInfo) -> str:
        max_length = (info.context or {}).get("max_length", DEFAULT_MAX_PROMPT_LENGTH)
        if len(value) > max_length:
            raise ValueError(too_long_message(max_length))
        return value


def validate_prompt(prompt: Any, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """
    Check that a prompt is non-empty text within the length limit.

    Raises:
        InvalidInputError: Carrying the first validation error message.

    Returns:
        The prompt, unchanged.
    """
    try:
        validated = PromptInput.model_validate(
            {"prompt": prompt}, context={"max_length": max_length}
        )
    except ValidationError as e:
        first = e.errors()[0]
        message = first.get("ctx", {}).get("error")
        raise InvalidInputError(str(message) if message else first["msg"]) from e
    return validated.prompt
