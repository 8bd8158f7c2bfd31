#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: authorization_handler.py
    Author: Alex Biddle

    Description:
        Implements Parley's two unauthenticated entry points: VERIFY USERS
        (login, the only transition of a LoginState to authenticated) and
        CREATE USERS (signup, one stored credential per user). Coordinates the
        Argon2i credential hasher with the users table. No plaintext password
        is ever stored or audited. An unknown email surfaces as NOT_FOUND from
        the users table; a wrong password is AUTH_FAILED.
"""


from typing import Optional
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
from parley.handlers.canonical_request import CanonicalRequest
from parley.handlers.packet_handler import Response
from parley.handlers.session_handler import LoginState
from parley.database.database_object import Database
from parley.database.users_table import UsersTable
from parley.encryption.argon2i_manager import Argon2iManager
from parley.utilities.audit_log import AuditLog
import parley.handlers.sanitization_validation as VALIDATION
import parley.constants as CONSTANTS


####################################################################################################
#                                   Authorization Handler
####################################################################################################

"""
    AuthorizationHandler

    Handles the requests that must work before a LoginState is authenticated:

        - VERIFY USERS: check users[0].email / users[0].password against the stored
          Credential and authenticate the LoginState on a match
        - CREATE USERS: hash every user's password with a fresh salt and insert
          (email, public_key, hash, salt), one write per user

    All failures raise ParleyError for the caller to format.
"""
class AuthorizationHandler:

    """
        Initialize the AuthorizationHandler with shared database, hasher, and audit helpers.

        @param database (Database): Shared Database helper object for PostgreSQL.
        @param argon2_manager (Argon2iManager): Credential hasher.
        @param audit (AuditLog|None): Audit log for non-sensitive events.
        @ensures The UsersTable helper is bound to the shared Database.
    """
    def __init__(self, database: Database, argon2_manager: Argon2iManager, audit: Optional[AuditLog] = None) -> None:

        if not isinstance(database, Database):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "database must be a Database helper instance", "database")
        if not isinstance(argon2_manager, Argon2iManager):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "argon2_manager must be an Argon2iManager instance", "argon2_manager")

        self._argon2_manager: Argon2iManager = argon2_manager
        self._audit: AuditLog = audit if audit is not None else AuditLog()
        self._users_table: UsersTable = UsersTable(database)



    ################################################################################################
    #                                   VERIFY USERS (LOGIN)
    ################################################################################################

    """
        Verify users[0]'s credentials and authenticate the login state on success.

        @param request (CanonicalRequest): Parsed VERIFY USERS request.
        @param login_state (LoginState): Per-connection state to authenticate.
        @require request.users holds at least one element with email and password
        @return Response: Bare success status.
        @ensures A password mismatch raises AUTH_FAILED, an unknown email NOT_FOUND; login_state is left untouched on either.
    """
    def verify_users(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        users = VALIDATION.require_list(request.users, CONSTANTS._USERS_FIELD)
        user = users[0]

        email = VALIDATION.require_field(user, "email", "user")
        password = VALIDATION.require_field(user, "password", "user")

        # NOT_FOUND and STORAGE_ERROR propagate unchanged
        credential = self._users_table.get_credential_by_email(email)

        if not self._argon2_manager.verify(password, credential):
            self._audit.event(event="verify_users_failed", email=email, context="authorization_handler")
            raise ParleyError(ApplicationCodes.AUTH_FAILED, HTTPCodes.UNAUTHORIZED, "Invalid email or password", "password")

        login_state.authenticate(email)

        self._audit.event(event="verify_users", email=email, context="authorization_handler")

        return Response()



    ################################################################################################
    #                                   CREATE USERS (SIGNUP)
    ################################################################################################

    """
        Create every user in the request.

        Each element is validated, hashed, and written before the next one is
        looked at, so a failure on element N leaves elements 0..N-1 stored.

        @param request (CanonicalRequest): Parsed CREATE USERS request.
        @param login_state (LoginState): Unused; signup needs no authentication.
        @require every element of request.users has email, password, and public_key
        @return Response: Bare success status.
    """
    def create_users(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        users = VALIDATION.require_list(request.users, CONSTANTS._USERS_FIELD)

        for user in users:
            email = VALIDATION.require_field(user, "email", "user")
            password = VALIDATION.require_field(user, "password", "user")
            public_key = VALIDATION.require_field(user, "public_key", "user")

            credential = self._argon2_manager.hash(password)

            self._users_table.create_user(email, public_key, credential)

            self._audit.event(event="create_users", email=email, context="authorization_handler")

        return Response()
