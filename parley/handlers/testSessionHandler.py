#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testSessionHandler.py
    Author: Alex Biddle

    Description:
        Tests for LoginState transitions and for binding the login state to
        Flask's signed cookie session.
"""

import unittest
from flask import Flask, session
from parley.handlers.session_handler import LoginState, load_login_state, store_login_state
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds
import parley.constants as CONSTANTS


class TestLoginState(unittest.TestCase):

    def test_fresh_state_is_unauthenticated(self):

        state = LoginState()

        self.assertEqual("", state.email)
        self.assertFalse(state.is_authenticated)


    """
        require_authenticated fails with Unauthorized until authenticate() runs.
    """
    def test_require_authenticated(self):

        state = LoginState()

        with self.assertRaises(ParleyError) as cm:
            state.require_authenticated()

        self.assertEqual(ApplicationCodes.NOT_AUTHENTICATED, cm.exception.application_code)
        self.assertEqual(HTTPCodes.UNAUTHORIZED, cm.exception.http_code)
        self.assertEqual(ErrorKinds.UNAUTHORIZED, cm.exception.kind)

        state.authenticate("alice@example.com")
        state.require_authenticated()

        self.assertTrue(state.is_authenticated)
        self.assertEqual("alice@example.com", state.email)

    def test_authenticate_is_idempotent(self):

        state = LoginState()
        state.authenticate("alice@example.com")
        state.authenticate("alice@example.com")

        self.assertEqual(LoginState(email="alice@example.com", is_authenticated=True), state)

    def test_authenticate_rejects_empty_identity(self):

        for bad in ("", "   ", None, 7):
            with self.subTest(email=bad):
                state = LoginState()

                with self.assertRaises(ParleyError):
                    state.authenticate(bad)

                self.assertFalse(state.is_authenticated)

    def test_states_are_independent(self):

        first = LoginState()
        second = LoginState()

        first.authenticate("alice@example.com")

        self.assertFalse(second.is_authenticated)
        self.assertEqual("", second.email)



class TestCookieBinding(unittest.TestCase):

    def setUp(self):
        self.app = Flask(__name__)
        self.app.config["SECRET_KEY"] = "test-secret"

    def test_empty_session_loads_unauthenticated(self):

        with self.app.test_request_context("/"):
            self.assertEqual(LoginState(), load_login_state())

    def test_store_then_load(self):

        with self.app.test_request_context("/"):
            state = LoginState()
            state.authenticate("bob@example.com")

            store_login_state(state)

            self.assertEqual("bob@example.com", session[CONSTANTS._SESSION_EMAIL_KEY])
            self.assertEqual(LoginState(email="bob@example.com", is_authenticated=True), load_login_state())

    def test_unauthenticated_state_writes_nothing(self):

        with self.app.test_request_context("/"):
            store_login_state(LoginState())

            self.assertNotIn(CONSTANTS._SESSION_EMAIL_KEY, session)
            self.assertNotIn(CONSTANTS._SESSION_AUTHENTICATED_KEY, session)

    """
        A cookie carrying an email without the authenticated flag is ignored.
    """
    def test_partial_cookie_is_ignored(self):

        with self.app.test_request_context("/"):
            session[CONSTANTS._SESSION_EMAIL_KEY] = "mallory@example.com"
            session[CONSTANTS._SESSION_AUTHENTICATED_KEY] = "yes"

            self.assertEqual(LoginState(), load_login_state())

    def test_store_rejects_other_types(self):

        with self.app.test_request_context("/"):
            with self.assertRaises(ParleyError):
                store_login_state({"email": "bob@example.com", "is_authenticated": True})


if __name__ == "__main__":
    unittest.main()
