import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Union

from ..errors import LLMError, UnparsableResponseError
from .prompts import PromptPayload

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class Structured:
    data: Dict[str, Any]


@dataclass(frozen=True)
class Fallback:
    reason: str


ParseOutcome = Union[Structured, Fallback]


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _balanced_spans(text: str) -> Iterator[str]:
    """Successive top-level `{...}` spans whose braces balance, ignoring braces inside strings."""
    start = -1
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif depth == 0:
            continue
        elif ch == '"':
            in_string = True
        elif ch == "}":
            depth -= 1
            if depth == 0:
                yield text[start:i + 1]


def extract_structured(raw_text: str) -> Dict[str, Any]:
    """Pull a JSON object out of free-form model output.

    Tried in order: ```json fenced blocks, each balanced top-level {...} span, and
    finally everything from the first "{" to the last "}". Raises
    UnparsableResponseError when none of them holds a JSON object.
    """
    if not raw_text:
        raise UnparsableResponseError("Empty model response")

    for block in _FENCED_JSON.findall(raw_text):
        obj = _loads_object(block)
        if obj is not None:
            return obj

    candidates: List[str] = list(_balanced_spans(raw_text))
    first, last = raw_text.find("{"), raw_text.rfind("}")
    if first != -1 and last > first:
        candidates.append(raw_text[first:last + 1])

    for candidate in candidates:
        obj = _loads_object(candidate)
        if obj is not None:
            return obj
    raise UnparsableResponseError("No valid JSON found in response")


def parse_structured(raw_text: str) -> ParseOutcome:
    try:
        return Structured(extract_structured(raw_text))
    except UnparsableResponseError as e:
        return Fallback(e.message)


async def infer_structured(llm, prompt: PromptPayload, task: str) -> ParseOutcome:
    """Run one inference and parse it. Never raises for inference or parse failures."""
    try:
        raw = await llm.complete(prompt)
    except LLMError as e:
        logger.warning("%s: inference failed, using fallback: %s", task, e.message)
        return Fallback(e.message)
    outcome = parse_structured(raw)
    if isinstance(outcome, Fallback):
        preview = raw[:200].replace("\n", " ")
        logger.warning("%s: unparsable model output, using fallback (%s): %s", task, outcome.reason, preview)
    return outcome


def as_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]
