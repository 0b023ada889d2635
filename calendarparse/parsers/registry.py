"""MIME type dispatch over the registered concrete parsers."""

import logging
from typing import Any

from ..exceptions import UnsupportedMimeTypeError
from .abstract_parser import AbstractParser

logger = logging.getLogger(__name__)

_PARSERS: dict[str, type[AbstractParser]] = {}


def _normalize_mime_type(mime_type: str) -> str:
    # Drop parameters such as "; charset=utf-8"
    return mime_type.split(";", 1)[0].strip().lower()


def register_parser(parser_cls: type[AbstractParser]) -> type[AbstractParser]:
    """Register a concrete parser for every MIME type it supports.

    Later registrations for the same MIME type replace earlier ones. Returns
    the class so it can be used as a decorator.
    """
    for mime_type in parser_cls.get_supported_mime_types():
        key = _normalize_mime_type(mime_type)
        previous = _PARSERS.get(key)
        if previous is not None and previous is not parser_cls:
            logger.debug(
                "Replacing parser %s with %s for %s", previous.__name__, parser_cls.__name__, key
            )
        _PARSERS[key] = parser_cls
    return parser_cls


def get_parser_class(mime_type: str) -> type[AbstractParser]:
    """Get the parser class registered for a MIME type.

    Raises:
        UnsupportedMimeTypeError: If no parser handles the MIME type
    """
    key = _normalize_mime_type(mime_type)
    try:
        return _PARSERS[key]
    except KeyError:
        raise UnsupportedMimeTypeError(
            f"No parser registered for MIME type {mime_type!r}", mime_type=mime_type
        ) from None


def get_parser(mime_type: str, options: Any = None, **kwargs: Any) -> AbstractParser:
    """Construct a parser for a MIME type with the given options."""
    parser_cls = get_parser_class(mime_type)
    return parser_cls(options, **kwargs)


def get_supported_mime_types() -> tuple[str, ...]:
    """Get all registered MIME types in registration order."""
    return tuple(_PARSERS)
