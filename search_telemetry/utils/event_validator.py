"""Schema validation for search and click events."""
import logging
from typing import Any, Mapping, Optional, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from search_telemetry.core.errors import ValidationError
from search_telemetry.core.results import Result
from search_telemetry.core.schemas import EVENT_TYPES, ClickEvent, SearchEvent, TelemetryEvent

logger = logging.getLogger(__name__)

# Assigned when the event is created, never taken from caller input
_ASSIGNED_FIELDS = {"eventId": "eventId", "event_id": "eventId", "timestamp": "timestamp"}


class EventSchemaValidator:
    """
    Validates raw event fields against the canonical event shapes.

    Never raises for malformed input: every failure comes back as a
    ``Result`` carrying ``ValidationError(field, reason)`` where ``field``
    is the wire (camelCase) name.
    """

    def validate(self, event_type: str, fields: Optional[Mapping[str, Any]]) -> Result[TelemetryEvent]:
        """
        Build and validate an event of ``event_type`` ("search" or "click").

        ``eventId`` and ``timestamp`` are generated here; supplying either
        is a validation failure.
        """
        return self._validate(event_type, fields, allow_assigned=False)

    def _validate(
        self, event_type: str, fields: Optional[Mapping[str, Any]], allow_assigned: bool
    ) -> Result[TelemetryEvent]:
        model = EVENT_TYPES.get(event_type)
        if model is None:
            return Result.failure(ValidationError("eventType", f"unknown event type {event_type!r}"))
        if not isinstance(fields, Mapping):
            return Result.failure(ValidationError("event", "fields must be a mapping"))

        payload = dict(fields)
        declared = payload.pop("eventType", payload.pop("event_type", event_type))
        if declared != event_type:
            return Result.failure(
                ValidationError("eventType", f"expected {event_type!r}, got {declared!r}")
            )
        if not allow_assigned:
            for key, wire_name in _ASSIGNED_FIELDS.items():
                if key in payload:
                    return Result.failure(
                        ValidationError(wire_name, "assigned when the event is created; must not be supplied")
                    )

        try:
            event = model.model_validate(payload)
        except PydanticValidationError as e:
            return Result.failure(self._convert(model, e))
        return Result.success(event)

    def validate_search(self, fields: Mapping[str, Any]) -> Result[SearchEvent]:
        return self.validate("search", fields)

    def validate_click(self, fields: Mapping[str, Any]) -> Result[ClickEvent]:
        return self.validate("click", fields)

    def validate_event(self, event: Union[SearchEvent, ClickEvent, Any]) -> Result[TelemetryEvent]:
        """Re-check an already constructed event (e.g. one built with model_construct)."""
        if not isinstance(event, (SearchEvent, ClickEvent)):
            return Result.failure(
                ValidationError("event", f"unsupported event object {type(event).__name__}")
            )
        fields = event.model_dump(by_alias=True)
        return self._validate(fields.pop("eventType"), fields, allow_assigned=True)

    @staticmethod
    def _convert(model: Type[BaseModel], error: PydanticValidationError) -> ValidationError:
        """Turn the first pydantic error into a field-named ValidationError."""
        first = error.errors()[0]
        loc = first.get("loc") or ("event",)
        name = str(loc[0])
        field_info = model.model_fields.get(name)
        if field_info is not None and field_info.alias:
            name = field_info.alias
        reason = first.get("msg", "invalid value")
        logger.debug(f"Rejected {model.__name__}: {name}: {reason}")
        return ValidationError(name, reason)
