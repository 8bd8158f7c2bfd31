#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testCanonicalRequest.py
    Author: Alex Biddle

    Description:
        Tests for CanonicalRequest parsing: function-token classification over
        the whole operation x target space, entity list decoding, error codes
        for malformed envelopes, and purity of repeated parses.
"""

import base64
import itertools
import json
import unittest
from datetime import datetime, timezone
from parley.handlers.canonical_request import CanonicalRequest, Operation, Target
from parley.handlers.packet_handler import User, Message, Conversation
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds


def b64u(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


####################################################################################################
#                                   Function token tests
####################################################################################################

class TestFunctionParsing(unittest.TestCase):

    OPERATIONS = ["CREATE", "READ", "UPDATE", "DELETE", "VERIFY"]
    TARGETS = ["USERS", "MESSAGES", "CONVERSATIONS"]

    """
        Every pair drawn from the two closed sets parses to the matching enums.
    """
    def test_every_known_pair_parses(self):

        for operation, target in itertools.product(self.OPERATIONS, self.TARGETS):
            with self.subTest(function=f"{operation} {target}"):
                request = CanonicalRequest.from_json({"function": f"{operation} {target}"})

                self.assertEqual(Operation(operation), request.operation)
                self.assertEqual(Target(target), request.target)
                self.assertIsNone(request.users)
                self.assertIsNone(request.messages)
                self.assertIsNone(request.conversations)

    """
        A pair with an unknown token on either side is an InvalidRequest naming the token.
    """
    def test_unknown_tokens_rejected(self):

        cases = [
            ("PATCH USERS", ApplicationCodes.UNKNOWN_OPERATION, "PATCH"),
            ("create USERS", ApplicationCodes.UNKNOWN_OPERATION, "create"),
            ("CREATE GROUPS", ApplicationCodes.UNKNOWN_TARGET, "GROUPS"),
            ("VERIFY users", ApplicationCodes.UNKNOWN_TARGET, "users"),
            ("USERS CREATE", ApplicationCodes.UNKNOWN_OPERATION, "USERS"),
        ]

        for function, code, token in cases:
            with self.subTest(function=function):
                with self.assertRaises(ParleyError) as cm:
                    CanonicalRequest.from_json({"function": function})

                exc = cm.exception
                self.assertEqual(code, exc.application_code)
                self.assertEqual(HTTPCodes.BAD_REQUEST, exc.http_code)
                self.assertEqual(ErrorKinds.INVALID_REQUEST, exc.kind)
                self.assertEqual("function", exc.field)
                self.assertIn(token, exc.detail)

    def test_missing_or_non_string_function_rejected(self):

        for envelope in ({}, {"function": None}, {"function": 42}, {"function": ["CREATE", "USERS"]}):
            with self.subTest(envelope=envelope):
                with self.assertRaises(ParleyError) as cm:
                    CanonicalRequest.from_json(envelope)

                self.assertEqual(ApplicationCodes.INVALID_REQUEST, cm.exception.application_code)
                self.assertEqual("function", cm.exception.field)

    def test_single_token_function_rejected(self):

        for function in ("", "   ", "CREATE"):
            with self.subTest(function=function):
                with self.assertRaises(ParleyError) as cm:
                    CanonicalRequest.from_json({"function": function})

                self.assertEqual(ApplicationCodes.INVALID_REQUEST, cm.exception.application_code)

    """
        Tokens after the target are ignored and any whitespace separates tokens.
    """
    def test_extra_tokens_and_whitespace_tolerated(self):

        request = CanonicalRequest.from_json({"function": "  READ\tMESSAGES  please now"})

        self.assertEqual(Operation.READ, request.operation)
        self.assertEqual(Target.MESSAGES, request.target)



####################################################################################################
#                                   Envelope decoding tests
####################################################################################################

class TestEnvelopeDecoding(unittest.TestCase):

    def test_parses_json_text_and_bytes(self):

        envelope = {"function": "VERIFY USERS", "users": [{"email": "alice@example.com", "password": "correct"}]}

        for raw in (json.dumps(envelope), json.dumps(envelope).encode("utf-8")):
            with self.subTest(kind=type(raw).__name__):
                request = CanonicalRequest.from_json(raw)
                self.assertEqual([User(email="alice@example.com", password="correct")], request.users)

    def test_malformed_json_rejected(self):

        for raw in ("{not json", b"\xff\xfe", "[1, 2]", 12):
            with self.subTest(raw=raw):
                with self.assertRaises(ParleyError) as cm:
                    CanonicalRequest.from_json(raw)

                self.assertEqual(HTTPCodes.BAD_REQUEST, cm.exception.http_code)

    """
        All three lists decode together, preserving order, with bytes and timestamps typed.
    """
    def test_all_lists_decoded(self):

        envelope = {
            "function": "CREATE MESSAGES",
            "users": [{"email": "a@example.com", "public_key": b64u(b"key-a")}, {"email": "b@example.com"}],
            "conversations": [{"id": 12, "name": b64u(b"general")}],
            "messages": [{
                "data": b64u(b"hello"),
                "media_type": "text/plain",
                "timestamp": "2024-03-01T12:30:00Z",
                "signature": b64u(b"sig"),
            }],
        }

        request = CanonicalRequest.from_json(envelope)

        self.assertEqual([User(email="a@example.com", public_key=b"key-a"), User(email="b@example.com")], request.users)
        self.assertEqual([Conversation(id=12, name=b"general")], request.conversations)
        self.assertEqual(
            [Message(data=b"hello", media_type="text/plain", timestamp=datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc), signature=b"sig")],
            request.messages,
        )

    def test_empty_and_absent_lists_are_distinct(self):

        request = CanonicalRequest.from_json({"function": "CREATE CONVERSATIONS", "users": [], "conversations": None})

        self.assertEqual([], request.users)
        self.assertIsNone(request.conversations)
        self.assertIsNone(request.messages)

    def test_non_array_list_field_treated_as_absent(self):

        request = CanonicalRequest.from_json({"function": "CREATE USERS", "users": {"email": "a@example.com"}})

        self.assertIsNone(request.users)

    def test_conversation_id_string_coerced(self):

        request = CanonicalRequest.from_json({"function": "READ MESSAGES", "conversations": [{"id": "34"}]})

        self.assertEqual(34, request.conversations[0].id)

    """
        The first element that fails to decode aborts the whole parse.
    """
    def test_first_bad_element_aborts_parse(self):

        cases = [
            ({"users": [{"email": "ok@example.com"}, {"email": 5}]}, ApplicationCodes.INVALID_TYPE, "email"),
            ({"users": ["not-an-object"]}, ApplicationCodes.INVALID_TYPE, "user"),
            ({"users": [{"public_key": "***"}]}, ApplicationCodes.INVALID_BASE64URL, "public_key"),
            ({"conversations": [{"id": True}]}, ApplicationCodes.INVALID_TYPE, "id"),
            ({"conversations": [{"id": 1.5}]}, ApplicationCodes.INVALID_TYPE, "id"),
            ({"messages": [{"timestamp": "2024-03-01 12:30:00"}]}, ApplicationCodes.INVALID_TIMESTAMP, "timestamp"),
            ({"messages": [{"timestamp": "2024-13-45T12:30:00Z"}]}, ApplicationCodes.INVALID_TIMESTAMP, "timestamp"),
            ({"messages": [{"media_type": ["text/plain"]}]}, ApplicationCodes.INVALID_TYPE, "media_type"),
        ]

        for extra, code, field_name in cases:
            with self.subTest(extra=extra):
                envelope = {"function": "CREATE USERS"}
                envelope.update(extra)

                with self.assertRaises(ParleyError) as cm:
                    CanonicalRequest.from_json(envelope)

                self.assertEqual(code, cm.exception.application_code)
                self.assertEqual(field_name, cm.exception.field)
                self.assertEqual(ErrorKinds.INVALID_REQUEST, cm.exception.kind)

    def test_null_fields_decode_to_none(self):

        request = CanonicalRequest.from_json({"function": "CREATE USERS", "users": [{"email": None, "password": None, "public_key": None}]})

        self.assertEqual([User()], request.users)

    def test_unknown_entity_fields_ignored(self):

        request = CanonicalRequest.from_json({"function": "CREATE USERS", "users": [{"email": "a@example.com", "nickname": "al"}]})

        self.assertEqual([User(email="a@example.com")], request.users)

    """
        Parsing the same envelope twice yields equal values and leaves the envelope untouched.
    """
    def test_parse_is_pure(self):

        envelope = {
            "function": "CREATE CONVERSATIONS",
            "users": [{"email": "b@example.com"}],
            "conversations": [{"name": b64u(b"team")}],
        }
        snapshot = json.loads(json.dumps(envelope))

        first = CanonicalRequest.from_json(envelope)
        second = CanonicalRequest.from_json(envelope)

        self.assertEqual(first, second)
        self.assertIsNot(first.users, second.users)
        self.assertEqual(snapshot, envelope)


if __name__ == "__main__":
    unittest.main()
