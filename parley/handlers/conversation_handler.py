#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: conversation_handler.py
    Author: Alex Biddle

    Description:
        Handles every operation on conversations and messages, plus reading
        the users of a conversation. All of them require an authenticated
        LoginState; the check runs before any payload validation so an
        unauthenticated caller always gets Unauthorized. Writes are issued one
        statement at a time with no wrapping transaction.
"""


import typing
from parley.database.database_object import Database
from parley.database.users_table import UsersTable
from parley.database.conversations_table import ConversationsTable
from parley.database.messages_table import MessagesTable
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
from parley.handlers.canonical_request import CanonicalRequest
from parley.handlers.packet_handler import Response, User, Message, Conversation
from parley.handlers.session_handler import LoginState
from parley.utilities.audit_log import AuditLog
import parley.handlers.sanitization_validation as VALIDATION
import parley.constants as CONSTANTS



"""
    Thin, validated adapter between canonical requests and the conversations,
    messages, and users tables. Message bodies and signatures are opaque bytes.
"""
class ConversationHandler:

    """
        Initialize the ConversationHandler with database and audit log dependencies.

        @param database (Database): Shared Database helper.
        @param audit (AuditLog|None): Audit logger for non-sensitive event recording.
        @ensures UsersTable, ConversationsTable, and MessagesTable exist, created in dependency order.
    """
    def __init__(self, database: Database, audit: typing.Optional[AuditLog] = None) -> None:

        if not isinstance(database, Database):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "ConversationHandler requires a Database instance", "database")

        self._audit: AuditLog = audit if audit is not None else AuditLog()
        self._users_table: UsersTable = UsersTable(database)
        self._conversations_table: ConversationsTable = ConversationsTable(database)
        self._messages_table: MessagesTable = MessagesTable(database)


    """
        Return conversations[0].id, failing fast when the list or the id is missing.
    """
    def _require_conversation_id(self, request: CanonicalRequest) -> int:

        conversations = VALIDATION.require_list(request.conversations, CONSTANTS._CONVERSATIONS_FIELD)

        return VALIDATION.require_field(conversations[0], "id", "conversation")



    ################################################################################################
    #                                         CREATE
    ################################################################################################

    """
        Create conversations[0] and add the caller plus every listed user as members.

        @param request (CanonicalRequest): Parsed CREATE CONVERSATIONS request.
        @param login_state (LoginState): Must be authenticated; its email becomes the first member.
        @require request.users is present (may be empty) and every element has an email
        @require request.conversations[0].name is present and valid UTF-8
        @return Response: Bare success status.
        @ensures Conversation row, then caller membership, then one membership per user, in order.
    """
    def create_conversations(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        login_state.require_authenticated()

        users = VALIDATION.require_list(request.users, CONSTANTS._USERS_FIELD, allow_empty=True)
        conversations = VALIDATION.require_list(request.conversations, CONSTANTS._CONVERSATIONS_FIELD)
        conversation = conversations[0]

        name_bytes = VALIDATION.require_field(conversation, "name", "conversation")
        name = VALIDATION.decode_bytes_to_utf8_text(name_bytes, "name")

        conversation_id = self._conversations_table.create_conversation(name)

        self._conversations_table.add_member(conversation_id, login_state.email)

        for user in users:
            email = VALIDATION.require_field(user, "email", "user")
            self._conversations_table.add_member(conversation_id, email)

        self._audit.event(event="create_conversations", email=login_state.email, context="conversation_handler", detail=f"conversation_id={conversation_id} members={len(users) + 1}")

        return Response()


    """
        Append every message in the request, attributed to the caller.

        @param request (CanonicalRequest): Parsed CREATE MESSAGES request.
        @param login_state (LoginState): Must be authenticated; its email is the sender.
        @require request.conversations has at least one element
        @require every message has data, media_type, timestamp, and signature
        @return Response: Bare success status.
    """
    def create_messages(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        login_state.require_authenticated()

        messages = VALIDATION.require_list(request.messages, CONSTANTS._MESSAGES_FIELD)

        # TODO: bind conversations[0].id once the messages schema contract is settled
        VALIDATION.require_list(request.conversations, CONSTANTS._CONVERSATIONS_FIELD)

        for message in messages:
            data = VALIDATION.require_field(message, "data", "message")
            media_type = VALIDATION.require_field(message, "media_type", "message")
            timestamp = VALIDATION.require_field(message, "timestamp", "message")
            signature = VALIDATION.require_field(message, "signature", "message")

            self._messages_table.create_message(login_state.email, data, media_type, timestamp, signature)

        self._audit.event(event="create_messages", email=login_state.email, context="conversation_handler", detail=f"count={len(messages)}")

        return Response()



    ################################################################################################
    #                                         READ
    ################################################################################################

    """
        Fetch the conversation the caller belongs to.

        @return Response: conversations holds the fetched row (id and UTF-8 name).
    """
    def read_conversations(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        login_state.require_authenticated()

        row = self._conversations_table.get_conversation_by_member(login_state.email)

        conversation = Conversation(id=row["id"], name=str(row["name"]).encode("utf-8"))

        self._audit.event(event="read_conversations", email=login_state.email, context="conversation_handler")

        return Response(conversations=[conversation])


    """
        Fetch a message of conversations[0].

        @require request.conversations[0].id is present
        @return Response: messages holds the fetched row.
    """
    def read_messages(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        login_state.require_authenticated()

        conversation_id = self._require_conversation_id(request)

        row = self._messages_table.get_message_by_conversation_and_member(login_state.email, conversation_id)

        message = Message(
            data=bytes(row["data"]),
            media_type=row["media_type"],
            timestamp=row["sent_at"],
            signature=bytes(row["signature"]),
        )

        self._audit.event(event="read_messages", email=login_state.email, context="conversation_handler", detail=f"conversation_id={conversation_id}")

        return Response(messages=[message])


    """
        Fetch a user of conversations[0].

        @require request.conversations[0].id is present
        @return Response: users holds the fetched row (email and public_key; never credentials).
    """
    def read_users(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        login_state.require_authenticated()

        conversation_id = self._require_conversation_id(request)

        row = self._users_table.get_user_by_conversation_and_member(login_state.email, conversation_id)

        user = User(email=row["email"], public_key=bytes(row["public_key"]))

        self._audit.event(event="read_users", email=login_state.email, context="conversation_handler", detail=f"conversation_id={conversation_id}")

        return Response(users=[user])
