"""
Schema compilation for phase metadata.

A metadata schema is a pydantic model class or any type pydantic's
TypeAdapter accepts. compile_schema() turns it into a SchemaChecker once and
caches the result, so repeated validations of the same phase reuse it.
Validation runs in strict mode: "yes" is not a bool and "1" is not an int.
"""

from functools import lru_cache
from typing import Any, Dict, List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from phasekit.exceptions import ConfigurationError


class SchemaChecker:
    """Compiled schema that reports every problem with a piece of data."""

    def __init__(self, schema: Any) -> None:
        self.schema = schema
        self._adapter = TypeAdapter(schema)

    def __repr__(self) -> str:
        return f"SchemaChecker({getattr(self.schema, '__name__', self.schema)!r})"

    def validate(self, data: Any) -> List[str]:
        """Return one message per problem, or an empty list if ``data`` conforms."""
        try:
            self._adapter.validate_python(data, strict=True)
        except PydanticValidationError as e:
            return [_format_error(err) for err in e.errors()]
        return []


def _format_error(err: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()))
    if location:
        return f"{location}: {err.get('msg', 'invalid value')}"
    return err.get("msg", "invalid value")


@lru_cache(maxsize=None)
def compile_schema(schema: Any) -> SchemaChecker:
    """Compile ``schema`` into a cached SchemaChecker.

    Raises:
        ConfigurationError: If pydantic cannot build a validator for ``schema``.
    """
    try:
        return SchemaChecker(schema)
    except Exception as e:
        raise ConfigurationError(f"invalid metadata schema {schema!r}: {e}") from e
