"""Parser configuration model and environment loading."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "CALENDARPARSE_"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


class ParserOptions(BaseModel):
    """Options supplied to a parser at construction.

    Options may be given by field name (``include_timezones``) or by their
    camelCase alias (``includeTimezones``). Unrecognized keys are kept as
    extras so concrete parsers can define their own, but the core never
    reads them. Instances are frozen.
    """

    extract_global_properties: bool = Field(
        default=False,
        alias="extractGlobalProperties",
        description="Preserve properties from the VCALENDAR component",
    )
    remove_rsvp_for_attendees: bool = Field(
        default=False,
        alias="removeRSVPForAttendees",
        description="Remove the RSVP parameter from attendees",
    )
    include_timezones: bool = Field(
        default=False,
        alias="includeTimezones",
        description="Include timezone definitions among produced items",
    )
    preserve_method: bool = Field(
        default=False,
        alias="preserveMethod",
        description="Preserve the iCalendar METHOD property",
    )
    process_free_busy: bool = Field(
        default=False,
        alias="processFreeBusy",
        description="Produce VFREEBUSY components",
    )

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    def resolve(self, name: str, default_value: Any = None) -> Any:
        """Get an option if it was supplied, else the given default.

        Args:
            name: Option name, either field name or camelCase alias
            default_value: Value returned when the option was not supplied

        Returns:
            The supplied value or ``default_value``
        """
        field_name = _field_name(name)
        if field_name in type(self).model_fields:
            if field_name in self.model_fields_set:
                return getattr(self, field_name)
            return default_value

        extras = self.model_extra or {}
        return extras.get(name, default_value)

    def supplied_values(self) -> dict[str, Any]:
        """Get the explicitly supplied options keyed by field name."""
        fields = type(self).model_fields
        values = {
            name: getattr(self, name) for name in self.model_fields_set if name in fields
        }
        values.update(self.model_extra or {})
        return values


_ALIASES = {
    field.alias: name for name, field in ParserOptions.model_fields.items() if field.alias
}


def _field_name(name: str) -> str:
    return _ALIASES.get(name, name)


def coerce_options(
    options: ParserOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> ParserOptions:
    """Build a ParserOptions from an existing instance, a mapping and/or keywords.

    Keyword overrides win over values from ``options``.
    """
    if options is None:
        values: dict[str, Any] = {}
    elif isinstance(options, ParserOptions):
        if not overrides:
            return options
        values = options.supplied_values()
    else:
        values = {_field_name(key): value for key, value in options.items()}

    values.update({_field_name(key): value for key, value in overrides.items()})
    return ParserOptions.model_validate(values)


def build_options_from_env(environ: Mapping[str, str] | None = None) -> ParserOptions:
    """Build parser options from environment variables.

    Recognizes ``CALENDARPARSE_<OPTION>`` for every option field, e.g.
    ``CALENDARPARSE_INCLUDE_TIMEZONES=true``. Unset variables are left
    unsupplied so ``resolve()`` keeps returning the caller's default.

    Args:
        environ: Mapping to read instead of ``os.environ``

    Returns:
        Parser options built from the environment
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    for name in ParserOptions.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        raw = env.get(key)
        if raw is None:
            continue

        normalized = raw.strip().lower()
        if normalized in _TRUTHY:
            values[name] = True
        elif normalized in _FALSY:
            values[name] = False
        else:
            logger.warning("Invalid %s=%r; ignoring", key, raw)

    if values:
        logger.debug("Loaded parser options from environment: %s", ", ".join(sorted(values)))

    return ParserOptions.model_validate(values)
