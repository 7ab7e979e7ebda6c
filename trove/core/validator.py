"""JSON-Schema validation adapter."""

from dataclasses import dataclass, field
from typing import Any, Iterable

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import SchemaError

from trove.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "message": self.message, "extra": self.extra}


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    data: Any = None


def _path_to_pointer(path: Iterable[Any]) -> str:
    """Render an instance path as a JSON pointer ("" for the root)."""
    return "".join(f"/{part}" for part in path)


class Validator:
    """Validates payloads against JSON-Schema documents.

    The draft is picked from the schema's ``$schema`` keyword and defaults to
    2020-12. An invalid schema yields a failed result rather than an exception.
    """

    def validate(self, schema: dict[str, Any], data: Any) -> ValidationResult:
        validator_cls = validators.validator_for(schema, default=Draft202012Validator)
        try:
            validator_cls.check_schema(schema)
        except SchemaError as e:
            logger.debug(
                "Rejected invalid schema",
                extra={"error": e.message, "schema_id": schema.get("$id")},
            )
            return ValidationResult(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        path="",
                        message=f"Invalid schema: {e.message}",
                        extra={"keyword": "schema"},
                    )
                ],
            )

        errors = sorted(
            validator_cls(schema).iter_errors(data),
            key=lambda err: (_path_to_pointer(err.absolute_path), err.message),
        )
        if errors:
            return ValidationResult(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        path=_path_to_pointer(err.absolute_path),
                        message=err.message,
                        extra={"keyword": err.validator, "params": err.validator_value},
                    )
                    for err in errors
                ],
            )

        return ValidationResult(is_valid=True, data=data)

    def format_errors(self, errors: list[ValidationIssue]) -> str:
        return "\n".join(
            f"Path {error.path}: {error.message}" if error.path else error.message
            for error in errors
        )
