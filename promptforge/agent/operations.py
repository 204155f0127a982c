"""
operations.py — promptforge operation parsing & validation

The model is asked for JSON ONLY, but it does not always comply:
- raw JSON
- JSON wrapped in ```json fences
- JSON buried in prose

Everything that comes back is treated as untrusted. The whole batch is
validated before a single row is touched.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models import FileOperation, OperationType

DEFAULT_RESPONSE = "Executing code changes..."
UNSTRUCTURED_RESPONSE = "AI provided text response instead of structured operations"

_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\n(.*?)\n?```", re.DOTALL)


class OperationValidationError(ValueError):
    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


@dataclass
class ParsedPayload:
    response: str
    operations: List[Any] = field(default_factory=list)
    structured: bool = True


def extract_json(text: str) -> Optional[Any]:
    """Best-effort JSON extraction from a model reply."""
    if text is None:
        return None
    raw = text.strip()
    if not raw:
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    match = _FENCE_RE.search(raw)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    start, end = raw.find("{"), raw.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(raw[start : end + 1])
        except json.JSONDecodeError:
            pass

    return None


def strip_code_fences(text: str) -> str:
    match = _FENCE_RE.search(text or "")
    if match:
        return match.group(1)
    return (text or "").strip()


def parse_execution_payload(text: str) -> ParsedPayload:
    parsed = extract_json(text)
    if not isinstance(parsed, dict):
        return ParsedPayload(response=UNSTRUCTURED_RESPONSE, operations=[], structured=False)

    response = parsed.get("response") or DEFAULT_RESPONSE
    operations = parsed.get("operations")
    if operations is None:
        operations = []
    return ParsedPayload(response=str(response), operations=operations, structured=True)


def check_path(path: Any) -> Optional[str]:
    """Return a problem description for an unsafe path, or None."""
    if not isinstance(path, str) or not path.strip():
        return "missing file path"
    if "\x00" in path:
        return f"invalid character in path: {path!r}"
    if "\\" in path:
        return f"backslashes are not allowed: {path}"
    if path.startswith("/") or re.match(r"^[A-Za-z]:", path):
        return f"absolute paths are not allowed: {path}"
    if ".." in path.split("/"):
        return f"path escapes the project: {path}"
    return None


class OperationValidator:

    def __init__(self, max_operations: int = 50):
        self.max_operations = max_operations

    def validate(self, raw_operations: Any) -> List[FileOperation]:
        if not isinstance(raw_operations, list):
            raise OperationValidationError(["'operations' must be a list"])

        if len(raw_operations) > self.max_operations:
            raise OperationValidationError(
                [f"too many operations: {len(raw_operations)} > {self.max_operations}"]
            )

        problems: List[str] = []
        operations: List[FileOperation] = []

        for index, raw in enumerate(raw_operations):
            where = f"operation {index + 1}"
            if not isinstance(raw, dict):
                problems.append(f"{where}: expected an object")
                continue

            path_problem = check_path(raw.get("filePath", raw.get("file_path")))
            if path_problem:
                problems.append(f"{where}: {path_problem}")
                continue

            try:
                op = FileOperation.model_validate(raw)
            except PydanticValidationError as exc:
                reasons = ", ".join(err["msg"] for err in exc.errors())
                problems.append(f"{where}: {reasons}")
                continue

            if op.type == OperationType.RENAME:
                target_problem = check_path(op.new_path)
                if target_problem:
                    problems.append(f"{where}: rename target {target_problem}")
                    continue
                if op.new_path == op.file_path:
                    problems.append(f"{where}: rename source and target are identical")
                    continue

            if op.type in (OperationType.CREATE, OperationType.UPDATE) and op.content is None:
                op.content = ""

            operations.append(op)

        if problems:
            raise OperationValidationError(problems)

        return operations
