import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent.parent / "schemas"


class ContractError(Exception):
    """Raised when a payload violates its data contract."""

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = list(problems or [])
        super().__init__(message)


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a JSON schema shipped with the package."""
    schema_path = SCHEMA_DIR / f"{schema_name}.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_name}")

    with open(schema_path, "r", encoding="utf-8") as f:
        return dict(json.load(f))


@lru_cache(maxsize=None)
def get_validator(schema_name: str) -> Draft202012Validator:
    schema = load_schema(schema_name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def describe_error(error: ValidationError) -> str:
    location = "/".join(str(part) for part in error.absolute_path) or "<root>"
    return f"{location}: {error.message}"


def validate_payload(data: Dict[str, Any], schema_name: str, mode: str = "STRICT") -> None:
    """
    Validate data against a JSON schema.

    Args:
        data: The dictionary to validate.
        schema_name: Name of the schema file (without .json extension).
        mode: 'STRICT' (raises error) or 'REVIEW' (logs warning).

    Raises:
        ContractError: If validation fails and mode is STRICT.
    """
    try:
        validator = get_validator(schema_name)
    except FileNotFoundError as e:
        raise ContractError(f"Data Contract Violation ({schema_name}): {e}") from e

    errors = sorted(validator.iter_errors(data), key=lambda err: [str(p) for p in err.path])
    problems = [describe_error(err) for err in errors]
    if not problems:
        return

    msg = f"Data Contract Violation ({schema_name}): {'; '.join(problems)}"
    if mode == "STRICT":
        raise ContractError(msg, problems)
    logger.warning(msg)
