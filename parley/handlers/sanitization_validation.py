#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: sanitization_validation.py
    Author: Alex Biddle

    Description:
        Provides the encoding, decoding, parsing, and type-conversion utilities
        used when Parley turns an untyped request envelope into typed entities,
        together with reusable field-level validators. Includes Base64URL
        conversions, UTF-8 helpers, JSON parsing, timestamp parsing, integer
        coercion, and the required-field checks every operation handler uses.

        Raises ParleyError for all malformed or non-conforming data.
"""

import base64
import binascii
import typing
import json
from datetime import datetime, timezone

from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.constants as CONSTANTS


####################################################################################################
#                                   Base64URL Encoding / Decoding
####################################################################################################

"""
    Convert a Base64URL string into raw bytes.

    @param field_name (str): Logical field name for context in error messages.
    @param b64u_text (Any): Base64URL-encoded string to decode.
    @require b64u_text is a string
    @return bytes: Decoded byte sequence.
    @ensures Padding is normalized and invalid base64url input raises ParleyError.
"""
def decode_base64url_to_bytes(field_name: str, b64u_text: typing.Any) -> bytes:
    try:
        if not isinstance(b64u_text, str):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be a base64url string", field_name)

        validate_b64(b64u_text, ApplicationCodes.INVALID_BASE64URL, field_name)
        validate_byte_size(b64u_text, CONSTANTS._MAX_B64URL_BYTES, ApplicationCodes.INVALID_LENGTH, field_name)

        # Add padding if necessary (base64url allows stripped "=")
        stripped = b64u_text.rstrip("=")
        padded = stripped + "=" * ((4 - len(stripped) % 4) % 4)

        return base64.urlsafe_b64decode(padded)

    except ParleyError:
        raise
    except (binascii.Error, ValueError):
        raise ParleyError(ApplicationCodes.INVALID_BASE64URL, HTTPCodes.BAD_REQUEST, f"Invalid base64url for '{field_name}'", field_name)



"""
    Convert raw bytes into a Base64URL string without padding.

    @param raw (bytes): Bytes to encode.
    @return str: Base64URL-encoded ASCII string without '=' padding.
"""
def encode_bytes_to_base64url(raw: bytes) -> str:
    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "b64url encode expects bytes", "raw")

    return base64.urlsafe_b64encode(bytes(raw)).decode("ascii").rstrip("=")



####################################################################################################
#                                   UTF-8 / JSON Conversions
####################################################################################################

"""
    Convert raw bytes into a UTF-8 decoded string.

    @param raw_bytes (bytes): UTF-8 encoded bytes.
    @param field_name (str): Field the bytes came from.
    @return str: UTF-8 decoded text.
    @ensures Invalid UTF-8 raises an INTEGRITY_ERROR (client fault, never retried).
"""
def decode_bytes_to_utf8_text(raw_bytes: bytes, field_name: str = "raw_bytes") -> str:
    if not isinstance(raw_bytes, (bytes, bytearray)):
        raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be bytes for UTF-8 decode", field_name)

    try:
        return bytes(raw_bytes).decode("utf-8")
    except UnicodeDecodeError:
        raise ParleyError(ApplicationCodes.INTEGRITY_ERROR, HTTPCodes.BAD_REQUEST, f"'{field_name}' is not valid UTF-8", field_name)



"""
    Parse a request body into a Python dictionary.

    @param raw (str|bytes|dict): JSON document, or an already decoded object.
    @return dict: Parsed JSON object.
    @ensures Raises ParleyError on malformed or non-object JSON values.
"""
def decode_json_to_dict(raw: typing.Any) -> dict:
    if isinstance(raw, dict):
        return raw

    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8")

        if not isinstance(raw, str):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, "Request must be a JSON object", "body")

        obj = json.loads(raw)

    except ParleyError:
        raise
    except (UnicodeDecodeError, ValueError):
        raise ParleyError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.BAD_REQUEST, "Malformed JSON payload", "body")

    if not isinstance(obj, dict):
        raise ParleyError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.BAD_REQUEST, "Expected JSON object", "body")

    return obj



####################################################################################################
#                                   Generalized Type Parsers
####################################################################################################

"""
    Parse a strict ISO8601Z timestamp into a UTC-aware datetime object.

    @param value (str): Timestamp ending with 'Z'.
    @param field_name (str): Field the value came from.
    @return datetime: Parsed UTC datetime.
    @ensures Raises ParleyError on invalid timestamp formatting.
"""
def parse_timestamp(value: typing.Any, field_name: str = "timestamp") -> datetime:
    if not isinstance(value, str):
        raise ParleyError(ApplicationCodes.INVALID_TIMESTAMP, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be an ISO8601Z string", field_name)

    cleaned = value.strip()
    validate_iso8601(cleaned, ApplicationCodes.INVALID_TIMESTAMP, field_name)

    try:
        parsed = datetime.strptime(cleaned, "%Y-%m-%dT%H:%M:%SZ")
    except ValueError:
        raise ParleyError(ApplicationCodes.INVALID_TIMESTAMP, HTTPCodes.BAD_REQUEST, f"Invalid ISO8601Z timestamp for '{field_name}'", field_name)

    # Force UTC timezone
    return parsed.replace(tzinfo=timezone.utc)



"""
    Convert an integer or a decimal string into an int.

    @param value (Any): Value to convert.
    @param field_name (str): Field the value came from.
    @return int: Integer representation.
    @ensures Booleans and floats are rejected; raises ParleyError if conversion fails.
"""
def coerce_to_int(value: typing.Any, field_name: str = "value") -> int:
    if isinstance(value, bool):
        raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be an integer", field_name)

    if isinstance(value, int):
        return value

    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())

    raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be an integer", field_name)



"""
    Format a datetime as a strict ISO8601Z string.

    @param value (datetime): Naive values are treated as UTC.
    @return str: Timestamp in exact format YYYY-MM-DDTHH:MM:SSZ
"""
def format_timestamp_iso8601z(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")



####################################################################################################
#                               GENERIC VALIDATORS (REUSABLE)
####################################################################################################

"""
    Function: Validate that a value is a non-empty string.

    @param: typing.Any - value to be validated
    @param: ApplicationCodes - application-level error type to raise if validation fails
    @param: str - field_name identifying the failing field
    @ensures: raises ParleyError if value is not a valid non-empty string
"""
def validate_string(value: typing.Any, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ParleyError(application_code, HTTPCodes.BAD_REQUEST, f"{field_name} must be a non-empty string.", field_name)



"""
    Function: Validate that a string is Base64URL formatted.

    @ensures: raises ParleyError if value is not valid Base64URL
"""
def validate_b64(value: str, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not CONSTANTS._BASE64URL_RX.match(value):
        raise ParleyError(application_code, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be Base64URL.", field_name)



"""
    Function: Validate an encoded value does not exceed the allowed length.

    @ensures: raises ParleyError if the encoded text exceeds max_bytes
"""
def validate_byte_size(value: str, max_bytes: int, application_code, field_name: str) -> None:
    if len(value) > max_bytes:
        raise ParleyError(application_code, HTTPCodes.BAD_REQUEST, f"'{field_name}' exceeds maximum allowed size.", field_name)



"""
    Function: Validate that a value is a strict ISO8601Z timestamp.

    @ensures: raises ParleyError if timestamp does not match ISO8601Z pattern
"""
def validate_iso8601(value: str, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not CONSTANTS._ISO8601Z.fullmatch(value):
        raise ParleyError(application_code, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be an ISO8601Z timestamp.", field_name)



####################################################################################################
#                               HANDLER FIELD PRESENCE
####################################################################################################

"""
    Return a required entity list from a canonical request, failing fast when absent or empty.

    @param items (list|None): The list as parsed from the envelope.
    @param list_name (str): Envelope field name ("users", "messages", "conversations").
    @param allow_empty (bool): Accept a present but empty list.
    @return list: The same list, holding at least one element unless allow_empty.
    @ensures Raises MISSING_FIELDS naming the list.
"""
def require_list(items: typing.Optional[list], list_name: str, allow_empty: bool = False) -> list:
    if items is None:
        raise ParleyError(ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, f"Missing '{list_name}' list", list_name)

    if len(items) == 0 and not allow_empty:
        raise ParleyError(ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, f"'{list_name}' list must contain at least one element", list_name)

    return items



"""
    Return a required field of a decoded entity, failing fast when it is None.

    @param entity (object): Decoded User, Message, or Conversation.
    @param field_name (str): Attribute to read.
    @param entity_name (str): Singular entity name used in the error message.
    @return Any: The field value.
    @ensures Raises MISSING_FIELDS naming both the field and the entity.
"""
def require_field(entity: typing.Any, field_name: str, entity_name: str) -> typing.Any:
    value = getattr(entity, field_name, None)

    if value is None:
        raise ParleyError(ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, f"Missing '{field_name}' field for '{entity_name}'", field_name)

    return value
