"""
Tolerant decoding of LLM JSON output.

Models often wrap JSON in a markdown fence or add prose around it. The decoder
takes the first fenced block if there is one, otherwise the raw text, then
parses and validates it against a pydantic type. Nothing here raises: the
caller decides what a ParseErr means.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from themis.core.errors import SchemaValidationError
from themis.core.logging import get_logger
from themis.core.metrics import record_schema_validation_failure

logger = get_logger(__name__)

T = TypeVar("T")

FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class ParseOk(Generic[T]):
    value: T


@dataclass(frozen=True)
class ParseErr:
    reason: str
    raw: str


ParseResult = Union[ParseOk[T], ParseErr]


def extract_json_text(content: str) -> str:
    match = FENCED_BLOCK_PATTERN.search(content)
    if match:
        return match.group(1)
    return content.strip()


def decode_response(content: str, target: Any) -> ParseResult:
    """
    Decode content into target (a pydantic model or any type TypeAdapter accepts).

    Returns:
        ParseOk with the validated value, or ParseErr with the reason and raw text.
    """
    text = extract_json_text(content)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        return ParseErr(reason=f"Invalid JSON: {exc}", raw=content)

    try:
        value = TypeAdapter(target).validate_python(payload)
    except ValidationError as exc:
        return ParseErr(reason=f"Schema mismatch: {exc}", raw=content)

    return ParseOk(value)


def decode_or_raise(task: str, content: str, target: Any, workspace_id: Optional[str] = None) -> Any:
    """
    decode_response, turning ParseErr into SchemaValidationError.

    Raises:
        SchemaValidationError
    """
    result = decode_response(content, target)
    if isinstance(result, ParseOk):
        return result.value

    record_schema_validation_failure(task)
    logger.warning(
        "llm_output_schema_invalid",
        task=task,
        workspace_id=workspace_id,
        reason=result.reason,
        raw_output=result.raw[:500],
    )
    raise SchemaValidationError(
        task=task,
        message=f"Failed to parse {task} response: {result.reason}",
        raw_output=result.raw,
    )
