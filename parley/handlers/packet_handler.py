#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: packet_handler.py
    Author: Alex Biddle

    Description:
        Defines Parley's wire entities (User, Conversation, Message) and the
        Response envelope, and provides the PacketHandler that decodes
        untyped JSON objects into those entities and serializes a Response
        back into a JSON-ready packet. Every entity field is optional on the
        wire; the decoders only enforce types, never presence, which is each
        operation handler's responsibility.
"""


import typing
from dataclasses import dataclass, field
from datetime import datetime
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.constants as CONSTANTS
import parley.handlers.sanitization_validation as VALIDATION


####################################################################################################
#                                         Wire Entities
####################################################################################################

"""
    A user as carried by a request. password is plaintext on input only.
"""
@dataclass
class User:
    email: typing.Optional[str] =           None
    password: typing.Optional[str] =        None
    public_key: typing.Optional[bytes] =    None


"""
    A conversation reference or a conversation to create.
"""
@dataclass
class Conversation:
    id: typing.Optional[int] =      None
    name: typing.Optional[bytes] =  None


"""
    A single message as supplied by its sender.
"""
@dataclass
class Message:
    data: typing.Optional[bytes] =          None
    media_type: typing.Optional[str] =      None
    timestamp: typing.Optional[datetime] =  None
    signature: typing.Optional[bytes] =     None


"""
    Outcome of a handler. status is 1 on every success path; the lists echo
    entities back to the caller and stay empty for writes.
"""
@dataclass
class Response:
    status: int =                                   CONSTANTS.RESPONSE_STATUS_SUCCESS
    users: typing.List[User] =                      field(default_factory=list)
    messages: typing.List[Message] =                field(default_factory=list)
    conversations: typing.List[Conversation] =      field(default_factory=list)



####################################################################################################
#                                         Packet Format Handlers
####################################################################################################

"""
    Decodes entity objects out of the request envelope and builds response packets.
"""
class PacketHandler:

    ################################################################################################
    #                                     FIELD DECODERS
    ################################################################################################

    def _ensure_object(self, obj: typing.Any, entity_name: str) -> dict:
        if not isinstance(obj, dict):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"Each '{entity_name}' must be a JSON object", entity_name)
        return obj

    def _optional_string(self, obj: dict, field_name: str) -> typing.Optional[str]:
        value = obj.get(field_name)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, f"'{field_name}' must be a string", field_name)
        return value

    def _optional_bytes(self, obj: dict, field_name: str) -> typing.Optional[bytes]:
        value = obj.get(field_name)
        if value is None:
            return None
        return VALIDATION.decode_base64url_to_bytes(field_name, value)

    def _optional_int(self, obj: dict, field_name: str) -> typing.Optional[int]:
        value = obj.get(field_name)
        if value is None:
            return None
        return VALIDATION.coerce_to_int(value, field_name)

    def _optional_timestamp(self, obj: dict, field_name: str) -> typing.Optional[datetime]:
        value = obj.get(field_name)
        if value is None:
            return None
        return VALIDATION.parse_timestamp(value, field_name)


    ################################################################################################
    #                                     ENTITY DECODERS
    ################################################################################################

    """
        Decode one element of the envelope's "users" array.

        @param obj (Any): JSON value for the user.
        @return User: Decoded user; absent fields are None.
        @ensures Raises INVALID_TYPE / INVALID_BASE64URL naming the offending field.
    """
    def decode_user(self, obj: typing.Any) -> User:
        obj = self._ensure_object(obj, "user")

        return User(
            email=self._optional_string(obj, "email"),
            password=self._optional_string(obj, "password"),
            public_key=self._optional_bytes(obj, "public_key"),
        )


    """
        Decode one element of the envelope's "conversations" array.
    """
    def decode_conversation(self, obj: typing.Any) -> Conversation:
        obj = self._ensure_object(obj, "conversation")

        return Conversation(
            id=self._optional_int(obj, "id"),
            name=self._optional_bytes(obj, "name"),
        )


    """
        Decode one element of the envelope's "messages" array.
    """
    def decode_message(self, obj: typing.Any) -> Message:
        obj = self._ensure_object(obj, "message")

        return Message(
            data=self._optional_bytes(obj, "data"),
            media_type=self._optional_string(obj, "media_type"),
            timestamp=self._optional_timestamp(obj, "timestamp"),
            signature=self._optional_bytes(obj, "signature"),
        )


    ################################################################################################
    #                                     RESPONSE PACKETS
    ################################################################################################

    def encode_user(self, user: User) -> dict:
        # Passwords are never echoed back
        packet = {"email": user.email}
        if user.public_key is not None:
            packet["public_key"] = VALIDATION.encode_bytes_to_base64url(user.public_key)
        return packet

    def encode_conversation(self, conversation: Conversation) -> dict:
        packet = {"id": conversation.id}
        if conversation.name is not None:
            packet["name"] = VALIDATION.encode_bytes_to_base64url(conversation.name)
        return packet

    def encode_message(self, message: Message) -> dict:
        packet = {"media_type": message.media_type}
        if message.data is not None:
            packet["data"] = VALIDATION.encode_bytes_to_base64url(message.data)
        if message.timestamp is not None:
            packet["timestamp"] = VALIDATION.format_timestamp_iso8601z(message.timestamp)
        if message.signature is not None:
            packet["signature"] = VALIDATION.encode_bytes_to_base64url(message.signature)
        return packet


    """
        Serialize a Response into the outbound envelope.

        @param response (Response): Handler outcome.
        @return dict: {"status": int} plus each non-empty entity list.
    """
    def create_response_packet(self, response: Response) -> dict:
        if not isinstance(response, Response):
            raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Handler did not return a Response", "response")

        packet: typing.Dict[str, typing.Any] = {"status": response.status}

        if response.users:
            packet[CONSTANTS._USERS_FIELD] = [self.encode_user(u) for u in response.users]
        if response.messages:
            packet[CONSTANTS._MESSAGES_FIELD] = [self.encode_message(m) for m in response.messages]
        if response.conversations:
            packet[CONSTANTS._CONVERSATIONS_FIELD] = [self.encode_conversation(c) for c in response.conversations]

        return packet
