#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testConversationHandler.py
    Author: Alex Biddle

    Description:
        Unit tests for ConversationHandler: the authentication gate, field
        presence errors, the order of writes, and mapping of fetched rows into
        the Response. Table helpers are mocks attached to one parent mock so
        the relative order of calls across tables can be asserted.
"""

import unittest
from datetime import datetime, timezone
from unittest import mock
from parley.database.database_object import Database
from parley.database.users_table import UsersTable
from parley.database.conversations_table import ConversationsTable
from parley.database.messages_table import MessagesTable
from parley.handlers.conversation_handler import ConversationHandler
from parley.handlers.canonical_request import CanonicalRequest, Operation, Target
from parley.handlers.packet_handler import Response, User, Message, Conversation
from parley.handlers.session_handler import LoginState
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds
from parley.utilities.audit_log import AuditLog


SENT_AT = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


def authenticated(email="alice@example.com"):
    state = LoginState()
    state.authenticate(email)
    return state


def full_message(**overrides):
    fields = {"data": b"hello", "media_type": "text/plain", "timestamp": SENT_AT, "signature": b"sig"}
    fields.update(overrides)
    return Message(**fields)



class ConversationHandlerTestCase(unittest.TestCase):

    def setUp(self):
        self.database = mock.MagicMock(spec=Database)
        self.audit = mock.MagicMock(spec=AuditLog)

        self.handler = ConversationHandler(self.database, self.audit)

        self.tables = mock.MagicMock()
        self.tables.attach_mock(mock.MagicMock(spec=UsersTable), "users")
        self.tables.attach_mock(mock.MagicMock(spec=ConversationsTable), "conversations")
        self.tables.attach_mock(mock.MagicMock(spec=MessagesTable), "messages")

        self.handler._users_table = self.tables.users
        self.handler._conversations_table = self.tables.conversations
        self.handler._messages_table = self.tables.messages



class TestConstruction(unittest.TestCase):

    """
        Tables are created users first, then conversations and members, then messages.
    """
    def test_tables_created_in_dependency_order(self):

        database = mock.MagicMock(spec=Database)

        ConversationHandler(database, mock.MagicMock(spec=AuditLog))

        created = [c[0][0] for c in database.execute_statment.call_args_list]

        self.assertEqual(4, len(created))
        self.assertIn("TABLE IF NOT EXISTS users", created[0])
        self.assertIn("TABLE IF NOT EXISTS conversations", created[1])
        self.assertIn("TABLE IF NOT EXISTS conversation_members", created[2])
        self.assertIn("TABLE IF NOT EXISTS messages", created[3])

    def test_rejects_non_database(self):

        with self.assertRaises(ParleyError):
            ConversationHandler(object())



####################################################################################################
#                                     Authentication gate
####################################################################################################

class TestAuthenticationGate(ConversationHandlerTestCase):

    """
        An unauthenticated caller gets Unauthorized even when the payload is invalid.
    """
    def test_every_operation_requires_authentication(self):

        operations = [
            (self.handler.create_conversations, Operation.CREATE, Target.CONVERSATIONS),
            (self.handler.create_messages, Operation.CREATE, Target.MESSAGES),
            (self.handler.read_conversations, Operation.READ, Target.CONVERSATIONS),
            (self.handler.read_messages, Operation.READ, Target.MESSAGES),
            (self.handler.read_users, Operation.READ, Target.USERS),
        ]

        for handler, operation, target in operations:
            with self.subTest(operation=operation.value, target=target.value):
                with self.assertRaises(ParleyError) as cm:
                    handler(CanonicalRequest(operation=operation, target=target), LoginState())

                self.assertEqual(ApplicationCodes.NOT_AUTHENTICATED, cm.exception.application_code)
                self.assertEqual(HTTPCodes.UNAUTHORIZED, cm.exception.http_code)
                self.assertEqual(ErrorKinds.UNAUTHORIZED, cm.exception.kind)

        self.assertEqual([], self.tables.mock_calls)



####################################################################################################
#                                     CREATE CONVERSATIONS
####################################################################################################

class TestCreateConversations(ConversationHandlerTestCase):

    def request(self, users, conversations):
        return CanonicalRequest(operation=Operation.CREATE, target=Target.CONVERSATIONS, users=users, conversations=conversations)

    """
        The conversation row comes first, then the caller, then each listed user in order.
    """
    def test_write_order(self):

        self.tables.conversations.create_conversation.return_value = 41

        response = self.handler.create_conversations(
            self.request([User(email="bob@example.com"), User(email="carol@example.com")], [Conversation(name=b"team")]),
            authenticated(),
        )

        self.assertEqual(Response(), response)
        self.assertEqual(
            [
                mock.call.conversations.create_conversation("team"),
                mock.call.conversations.add_member(41, "alice@example.com"),
                mock.call.conversations.add_member(41, "bob@example.com"),
                mock.call.conversations.add_member(41, "carol@example.com"),
            ],
            self.tables.mock_calls,
        )

    def test_empty_users_list_adds_only_caller(self):

        self.tables.conversations.create_conversation.return_value = 7

        self.handler.create_conversations(self.request([], [Conversation(name=b"notes")]), authenticated())

        self.tables.conversations.add_member.assert_called_once_with(7, "alice@example.com")

    def test_missing_lists_or_name(self):

        cases = [
            (self.request(None, [Conversation(name=b"team")]), "users"),
            (self.request([], None), "conversations"),
            (self.request([], []), "conversations"),
            (self.request([], [Conversation(id=3)]), "name"),
        ]

        for request, field_name in cases:
            with self.subTest(field=field_name):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.create_conversations(request, authenticated())

                self.assertEqual(ApplicationCodes.MISSING_FIELDS, cm.exception.application_code)
                self.assertEqual(field_name, cm.exception.field)

        self.assertEqual([], self.tables.mock_calls)

    def test_non_utf8_name_is_integrity_error(self):

        with self.assertRaises(ParleyError) as cm:
            self.handler.create_conversations(self.request([], [Conversation(name=b"\xff\xfe")]), authenticated())

        self.assertEqual(ErrorKinds.INTEGRITY_ERROR, cm.exception.kind)
        self.tables.conversations.create_conversation.assert_not_called()

    """
        A user without an email fails after the conversation and earlier members were written.
    """
    def test_user_without_email_leaves_partial_writes(self):

        self.tables.conversations.create_conversation.return_value = 9

        with self.assertRaises(ParleyError) as cm:
            self.handler.create_conversations(
                self.request([User(email="bob@example.com"), User()], [Conversation(name=b"team")]),
                authenticated(),
            )

        self.assertEqual("email", cm.exception.field)
        self.assertEqual(
            [mock.call(9, "alice@example.com"), mock.call(9, "bob@example.com")],
            self.tables.conversations.add_member.call_args_list,
        )



####################################################################################################
#                                     CREATE MESSAGES
####################################################################################################

class TestCreateMessages(ConversationHandlerTestCase):

    def request(self, messages, conversations=(Conversation(id=5),)):
        conversations = list(conversations) if conversations is not None else None
        return CanonicalRequest(operation=Operation.CREATE, target=Target.MESSAGES, messages=messages, conversations=conversations)

    def test_every_message_attributed_to_caller(self):

        second = full_message(data=b"again", media_type="image/png")

        response = self.handler.create_messages(self.request([full_message(), second]), authenticated("bob@example.com"))

        self.assertEqual(Response(), response)
        self.assertEqual(
            [
                mock.call("bob@example.com", b"hello", "text/plain", SENT_AT, b"sig"),
                mock.call("bob@example.com", b"again", "image/png", SENT_AT, b"sig"),
            ],
            self.tables.messages.create_message.call_args_list,
        )

    def test_conversation_id_not_required(self):

        self.handler.create_messages(self.request([full_message()], [Conversation(name=b"x")]), authenticated())

        self.tables.messages.create_message.assert_called_once()

    def test_missing_lists(self):

        for request, field_name in ((self.request(None), "messages"), (self.request([]), "messages"), (self.request([full_message()], None), "conversations")):
            with self.subTest(field=field_name):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.create_messages(request, authenticated())

                self.assertEqual(field_name, cm.exception.field)

        self.tables.messages.create_message.assert_not_called()

    def test_missing_message_field(self):

        for field_name in ("data", "media_type", "timestamp", "signature"):
            with self.subTest(field=field_name):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.create_messages(self.request([full_message(**{field_name: None})]), authenticated())

                self.assertEqual(ApplicationCodes.MISSING_FIELDS, cm.exception.application_code)
                self.assertEqual(field_name, cm.exception.field)

        self.tables.messages.create_message.assert_not_called()



####################################################################################################
#                                         READS
####################################################################################################

class TestReads(ConversationHandlerTestCase):

    def test_read_conversations_maps_row(self):

        self.tables.conversations.get_conversation_by_member.return_value = {"id": 12, "name": "general"}

        response = self.handler.read_conversations(CanonicalRequest(operation=Operation.READ, target=Target.CONVERSATIONS), authenticated())

        self.assertEqual(Response(conversations=[Conversation(id=12, name=b"general")]), response)
        self.tables.conversations.get_conversation_by_member.assert_called_once_with("alice@example.com")

    def test_read_messages_maps_row(self):

        self.tables.messages.get_message_by_conversation_and_member.return_value = {
            "data": memoryview(b"hello"),
            "media_type": "text/plain",
            "sent_at": SENT_AT,
            "signature": memoryview(b"sig"),
        }

        response = self.handler.read_messages(
            CanonicalRequest(operation=Operation.READ, target=Target.MESSAGES, conversations=[Conversation(id=12)]),
            authenticated(),
        )

        self.assertEqual(Response(messages=[full_message()]), response)
        self.tables.messages.get_message_by_conversation_and_member.assert_called_once_with("alice@example.com", 12)

    def test_read_users_never_returns_credentials(self):

        self.tables.users.get_user_by_conversation_and_member.return_value = {"email": "bob@example.com", "public_key": memoryview(b"key-b")}

        response = self.handler.read_users(
            CanonicalRequest(operation=Operation.READ, target=Target.USERS, conversations=[Conversation(id=12)]),
            authenticated(),
        )

        self.assertEqual(Response(users=[User(email="bob@example.com", public_key=b"key-b")]), response)
        self.assertIsNone(response.users[0].password)

    def test_reads_need_conversation_id(self):

        for handler in (self.handler.read_messages, self.handler.read_users):
            for conversations, field_name in ((None, "conversations"), ([Conversation(name=b"x")], "id")):
                with self.subTest(handler=handler.__name__, field=field_name):
                    with self.assertRaises(ParleyError) as cm:
                        handler(CanonicalRequest(operation=Operation.READ, target=Target.USERS, conversations=conversations), authenticated())

                    self.assertEqual(field_name, cm.exception.field)

    def test_not_found_propagates(self):

        self.tables.conversations.get_conversation_by_member.side_effect = ParleyError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, "No matching row", "sql_fetch_exactly_one")

        with self.assertRaises(ParleyError) as cm:
            self.handler.read_conversations(CanonicalRequest(operation=Operation.READ, target=Target.CONVERSATIONS), authenticated())

        self.assertEqual(ErrorKinds.NOT_FOUND, cm.exception.kind)


if __name__ == "__main__":
    unittest.main()
