#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: session_handler.py
    Author: Alex Biddle

    Description:
        Holds the per-connection login state consulted by every operation
        handler: the identity that last passed credential verification and
        whether it is authenticated. A LoginState is created fresh for each
        request context, set only by a successful VERIFY USERS, and never
        shared between callers. Also binds that state to Flask's signed cookie
        session so consecutive requests on one client connection see it.
"""


from dataclasses import dataclass
from flask import session as public_cookie_session
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.constants as CONSTANTS
import parley.handlers.sanitization_validation as VALIDATION


####################################################################################################
# Login State
####################################################################################################

"""
    Authentication context for one in-flight request or connection.

    email            : Identity bound by the last successful verification ("" until then)
    is_authenticated : False until authenticate() is called; there is no way back to False
"""
@dataclass
class LoginState:

    email: str =                ""
    is_authenticated: bool =    False


    """
        Bind an identity and mark this state authenticated.

        @param email (str): Identity whose credential was just verified.
        @require Credential verification for email has already succeeded
        @ensures self.is_authenticated is True and self.email == email; repeated calls are harmless.
    """
    def authenticate(self, email: str) -> None:

        VALIDATION.validate_string(email, ApplicationCodes.INVALID_TYPE, "email")

        self.email = email
        self.is_authenticated = True


    """
        Fail with Unauthorized unless authenticate() has been called on this state.
    """
    def require_authenticated(self) -> None:

        if not self.is_authenticated:
            raise ParleyError(ApplicationCodes.NOT_AUTHENTICATED, HTTPCodes.UNAUTHORIZED, "Not authenticated", "session")



####################################################################################################
# Cookie binding
####################################################################################################

"""
    Build the LoginState for the current Flask request from the signed cookie session.

    @return LoginState: Unauthenticated unless the cookie carries an authenticated identity.
"""
def load_login_state() -> LoginState:

    email = public_cookie_session.get(CONSTANTS._SESSION_EMAIL_KEY)
    is_authenticated = public_cookie_session.get(CONSTANTS._SESSION_AUTHENTICATED_KEY) is True

    if not is_authenticated or not isinstance(email, str) or not email.strip():
        return LoginState()

    return LoginState(email=email, is_authenticated=True)


"""
    Persist a LoginState into the Flask signed cookie session.

    @param state (LoginState): State after the handler ran.
    @ensures Only authenticated identities are written; an unauthenticated state writes nothing.
"""
def store_login_state(state: LoginState) -> None:

    if not isinstance(state, LoginState):
        raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "store_login_state requires a LoginState", "session")

    if state.is_authenticated:
        public_cookie_session[CONSTANTS._SESSION_EMAIL_KEY] = state.email
        public_cookie_session[CONSTANTS._SESSION_AUTHENTICATED_KEY] = True
