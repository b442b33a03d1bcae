"""JSON document helpers for configuration import/export"""
import json
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import MalformedInputError, ValidationError

M = TypeVar("M", bound=BaseModel)


def load_json_document(raw: Union[str, bytes], max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """
    Strictly parse an uploaded configuration file
    
    Raises:
        MalformedInputError: not UTF-8, not JSON, too large, or not a JSON object
    """
    if isinstance(raw, bytes):
        if max_bytes is not None and len(raw) > max_bytes:
            raise MalformedInputError(f"File exceeds {max_bytes} bytes")
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise MalformedInputError("File is not UTF-8 encoded")
    
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedInputError("Invalid JSON file", details={"reason": str(e)})
    
    if not isinstance(data, dict):
        raise MalformedInputError("JSON document must be an object")
    return data


def dump_json_document(data: Dict[str, Any]) -> str:
    """Pretty-printed export"""
    return json.dumps(data, indent=2, ensure_ascii=False)


def validate_model(
    model_cls: Type[M],
    data: Any,
    error_cls: Type[ValidationError] = ValidationError
) -> M:
    """
    Validate data into a model, mapping pydantic errors to a domain error
    
    The first failing location is reported as the offending field.
    """
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise error_cls(
            f"Invalid {model_cls.__name__}: {first.get('msg', 'validation failed')}",
            field=field,
            details={"errors": [
                {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg")}
                for err in errors
            ]}
        )
