"""Base model shared by Solidtime entities"""

from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from solidtime.domain.exceptions import SolidtimeApiException

T = TypeVar("T", bound="SolidtimeEntity")


class SolidtimeEntity(BaseModel):
    """Entity returned by the API, identified by a string id.

    Unknown fields are kept in ``model_extra`` so that callers can decide
    whether an API change should fail parsing.
    """

    id: str

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_envelope(cls: Type[T], payload: Any, *, disallow_unmapped: bool = False) -> T:
        """Parse a single-item ``{"data": {...}}`` envelope.

        Args:
            payload: Decoded JSON body
            disallow_unmapped: Raise if the entity carries fields the model does not map

        Returns:
            Parsed entity

        Raises:
            SolidtimeApiException: If the envelope is malformed or has unmapped fields
        """
        if not isinstance(payload, dict) or "data" not in payload:
            raise SolidtimeApiException("Response is missing the 'data' envelope")
        data: Dict[str, Any] = payload["data"]
        try:
            entity = cls.model_validate(data)
        except ValidationError as e:
            raise SolidtimeApiException(f"Invalid {cls.__name__} payload: {e}") from e
        if disallow_unmapped and entity.model_extra:
            unmapped = ", ".join(sorted(entity.model_extra))
            raise SolidtimeApiException(f"Unmapped {cls.__name__} fields: {unmapped}")
        return entity
