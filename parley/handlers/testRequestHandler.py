#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testRequestHandler.py
    Author: Alex Biddle

    Description:
        Tests for RequestHandler routing: each supported (operation, target)
        pair reaches exactly one handler method, every other pair fails with
        UNSUPPORTED_OPERATION, and handle_raw serializes the outcome.
"""

import base64
import itertools
import json
import unittest
from unittest import mock
from parley.handlers.authorization_handler import AuthorizationHandler
from parley.handlers.conversation_handler import ConversationHandler
from parley.handlers.request_handler import RequestHandler
from parley.handlers.canonical_request import CanonicalRequest, Operation, Target
from parley.handlers.packet_handler import Response, User, Conversation
from parley.handlers.session_handler import LoginState
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds


SUPPORTED = {
    (Operation.VERIFY, Target.USERS):           ("authorization", "verify_users"),
    (Operation.CREATE, Target.USERS):           ("authorization", "create_users"),
    (Operation.CREATE, Target.CONVERSATIONS):   ("conversation", "create_conversations"),
    (Operation.CREATE, Target.MESSAGES):        ("conversation", "create_messages"),
    (Operation.READ, Target.USERS):             ("conversation", "read_users"),
    (Operation.READ, Target.CONVERSATIONS):     ("conversation", "read_conversations"),
    (Operation.READ, Target.MESSAGES):          ("conversation", "read_messages"),
}

HANDLER_METHODS = ["verify_users", "create_users", "create_conversations", "create_messages", "read_users", "read_conversations", "read_messages"]



class RequestHandlerTestCase(unittest.TestCase):

    def setUp(self):
        self.authorization = mock.MagicMock(spec=AuthorizationHandler)
        self.conversation = mock.MagicMock(spec=ConversationHandler)

        for handler in (self.authorization, self.conversation):
            for name in HANDLER_METHODS:
                if hasattr(handler, name):
                    getattr(handler, name).return_value = Response()

        self.handler = RequestHandler(self.authorization, self.conversation)

    def all_handler_calls(self):
        return self.authorization.mock_calls + self.conversation.mock_calls



class TestDispatch(RequestHandlerTestCase):

    """
        Each supported pair calls its handler once, with the request and login state, and nothing else.
    """
    def test_supported_pairs_route_to_one_handler(self):

        for (operation, target), (owner, method) in SUPPORTED.items():
            with self.subTest(function=f"{operation.value} {target.value}"):
                self.authorization.reset_mock()
                self.conversation.reset_mock()

                request = CanonicalRequest(operation=operation, target=target)
                login_state = LoginState()

                response = self.handler.handle(request, login_state)

                target_mock = self.authorization if owner == "authorization" else self.conversation
                getattr(target_mock, method).assert_called_once_with(request, login_state)
                self.assertEqual(1, len(self.all_handler_calls()))
                self.assertEqual(Response(), response)

    """
        Every other pair of the two enums is rejected before any handler runs.
    """
    def test_unsupported_pairs_rejected(self):

        for operation, target in itertools.product(Operation, Target):
            if (operation, target) in SUPPORTED:
                continue

            with self.subTest(function=f"{operation.value} {target.value}"):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.handle(CanonicalRequest(operation=operation, target=target), LoginState())

                self.assertEqual(ApplicationCodes.UNSUPPORTED_OPERATION, cm.exception.application_code)
                self.assertEqual(HTTPCodes.BAD_REQUEST, cm.exception.http_code)
                self.assertEqual(ErrorKinds.INVALID_REQUEST, cm.exception.kind)
                self.assertIn(f"{operation.value} {target.value}", cm.exception.detail)

        self.assertEqual([], self.all_handler_calls())

    def test_handler_errors_propagate_unchanged(self):

        error = ParleyError(ApplicationCodes.NOT_AUTHENTICATED, HTTPCodes.UNAUTHORIZED, "Not authenticated", "session")
        self.conversation.read_conversations.side_effect = error

        with self.assertRaises(ParleyError) as cm:
            self.handler.handle(CanonicalRequest(operation=Operation.READ, target=Target.CONVERSATIONS), LoginState())

        self.assertIs(error, cm.exception)

    def test_rejects_wrong_dependency_types(self):

        with self.assertRaises(ParleyError):
            RequestHandler(object(), self.conversation)

        with self.assertRaises(ParleyError):
            RequestHandler(self.authorization, object())



class TestHandleRaw(RequestHandlerTestCase):

    def test_bare_success_packet(self):

        packet = self.handler.handle_raw(json.dumps({"function": "CREATE USERS", "users": []}), LoginState())

        self.assertEqual({"status": 1}, packet)

    def test_entities_serialized(self):

        self.conversation.read_users.return_value = Response(users=[User(email="bob@example.com", public_key=b"key-b", password="never")])
        self.conversation.read_conversations.return_value = Response(conversations=[Conversation(id=3, name=b"team")])

        users_packet = self.handler.handle_raw({"function": "READ USERS", "conversations": [{"id": 3}]}, LoginState())
        conversations_packet = self.handler.handle_raw({"function": "READ CONVERSATIONS"}, LoginState())

        expected_key = base64.urlsafe_b64encode(b"key-b").decode("ascii").rstrip("=")
        expected_name = base64.urlsafe_b64encode(b"team").decode("ascii").rstrip("=")

        self.assertEqual({"status": 1, "users": [{"email": "bob@example.com", "public_key": expected_key}]}, users_packet)
        self.assertEqual({"status": 1, "conversations": [{"id": 3, "name": expected_name}]}, conversations_packet)

    def test_parse_errors_reach_no_handler(self):

        with self.assertRaises(ParleyError) as cm:
            self.handler.handle_raw({"function": "PATCH USERS"}, LoginState())

        self.assertEqual(ApplicationCodes.UNKNOWN_OPERATION, cm.exception.application_code)
        self.assertEqual([], self.all_handler_calls())


if __name__ == "__main__":
    unittest.main()
