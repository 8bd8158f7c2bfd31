#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: canonical_request.py
    Author: Alex Biddle

    Description:
        Parses Parley's generic request envelope into a CanonicalRequest: the
        operation and target named by the "function" field plus the decoded
        users, messages, and conversations lists. Parsing is all-or-nothing
        and has no side effects; the first malformed element aborts it.
"""


import enum
import typing
from dataclasses import dataclass
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
from parley.handlers.packet_handler import PacketHandler, User, Message, Conversation
import parley.constants as CONSTANTS
import parley.handlers.sanitization_validation as VALIDATION


"""
    Closed set of operations. UPDATE and DELETE parse but have no handlers yet.
"""
class Operation(enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VERIFY = "VERIFY"


"""
    Closed set of entity kinds an operation can act on.
"""
class Target(enum.Enum):
    USERS = "USERS"
    MESSAGES = "MESSAGES"
    CONVERSATIONS = "CONVERSATIONS"


# Shared, stateless decoder set
_PACKET_HANDLER = PacketHandler()


"""
    Canonical form of a request.

    operation, target : Parsed from the two-token "function" field
    users             : Decoded "users" array, or None when the envelope has none
    messages          : Decoded "messages" array, or None
    conversations     : Decoded "conversations" array, or None

    Index 0 of a list is the primary subject when a handler needs a single element.
"""
@dataclass
class CanonicalRequest:

    operation: Operation
    target: Target
    users: typing.Optional[typing.List[User]] =                  None
    messages: typing.Optional[typing.List[Message]] =            None
    conversations: typing.Optional[typing.List[Conversation]] =  None


    """
        Parse an untyped envelope into a CanonicalRequest.

        @param raw (dict|str|bytes): Envelope as a decoded JSON object or JSON text.
        @return CanonicalRequest: Fully populated request.
        @ensures Raises ParleyError (InvalidRequest class) for a missing or unknown function,
                 or for the first entity that fails to decode; no partial result is produced.
    """
    @classmethod
    def from_json(cls, raw: typing.Any) -> "CanonicalRequest":

        data = VALIDATION.decode_json_to_dict(raw)

        operation, target = cls._split_function(data.get(CONSTANTS._FUNCTION_FIELD))

        return cls(
            operation=operation,
            target=target,
            users=cls._decode_list(data, CONSTANTS._USERS_FIELD, _PACKET_HANDLER.decode_user),
            messages=cls._decode_list(data, CONSTANTS._MESSAGES_FIELD, _PACKET_HANDLER.decode_message),
            conversations=cls._decode_list(data, CONSTANTS._CONVERSATIONS_FIELD, _PACKET_HANDLER.decode_conversation),
        )


    """
        Split "<OPERATION> <TARGET>" into the two enums.

        Only the first two whitespace-separated tokens are read; anything after them is ignored.
    """
    @staticmethod
    def _split_function(function: typing.Any) -> typing.Tuple[Operation, Target]:

        if not isinstance(function, str):
            raise ParleyError(ApplicationCodes.INVALID_REQUEST, HTTPCodes.BAD_REQUEST, "Invalid request function", CONSTANTS._FUNCTION_FIELD)

        tokens = function.split()

        if len(tokens) < 2:
            raise ParleyError(ApplicationCodes.INVALID_REQUEST, HTTPCodes.BAD_REQUEST, "Request function must be '<OPERATION> <TARGET>'", CONSTANTS._FUNCTION_FIELD)

        operation_token, target_token = tokens[0], tokens[1]

        if operation_token not in CONSTANTS._ALLOWED_OPERATIONS:
            raise ParleyError(ApplicationCodes.UNKNOWN_OPERATION, HTTPCodes.BAD_REQUEST, f"Unknown request operation: '{operation_token}'", CONSTANTS._FUNCTION_FIELD)

        if target_token not in CONSTANTS._ALLOWED_TARGETS:
            raise ParleyError(ApplicationCodes.UNKNOWN_TARGET, HTTPCodes.BAD_REQUEST, f"Unknown request target: '{target_token}'", CONSTANTS._FUNCTION_FIELD)

        return Operation(operation_token), Target(target_token)


    """
        Decode an optional envelope array with the given element decoder.

        @return list|None: None when the field is absent or not an array.
    """
    @staticmethod
    def _decode_list(data: dict, field_name: str, decoder: typing.Callable[[typing.Any], typing.Any]) -> typing.Optional[list]:

        items = data.get(field_name)

        if not isinstance(items, list):
            return None

        return [decoder(item) for item in items]
