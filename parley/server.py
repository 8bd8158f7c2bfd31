#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: server.py
    Author: Alex Biddle

    Description:
        Entry point for the Parley backend. Configures the Flask application,
        the Argon2i credential hasher, the database helper, audit logging,
        error handling, and the request handlers, and exposes the single
        request route. The login state lives in Flask's signed cookie session
        so each client connection carries its own. All exceptions are
        normalized through the centralized ErrorHandler.
"""


import os
import typing
from flask import Flask, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from parley.utilities.audit_log import AuditLog
from parley.encryption.argon2i_manager import Argon2iManager
from parley.database.database_object import Database
from parley.handlers.authorization_handler import AuthorizationHandler
from parley.handlers.conversation_handler import ConversationHandler
from parley.handlers.request_handler import RequestHandler
from parley.handlers.session_handler import LoginState, load_login_state, store_login_state
from parley.handlers.error_handler import ErrorHandler, ApplicationCodes, HTTPCodes, ParleyError
import parley.constants as CONSTANTS


#####################################################################################################################################################################

"""
    Create and configure the full Parley Flask application.

    @param database (Database|None): Storage helper; built from PARLEY_DB_CREDENTIALS when omitted.
    @param audit_log (AuditLog|None): Audit log; built from PARLEY_AUDIT_LOG when omitted.
    @param config (dict|None): Extra Flask configuration applied last.
    @return Flask: Fully configured Flask application instance.
    @ensures Raises ParleyError when neither FLASK_SECRET_KEY nor config supplies a SECRET_KEY.
"""
def create_app(database: typing.Optional[Database] = None, audit_log: typing.Optional[AuditLog] = None, config: typing.Optional[dict] = None) -> Flask:

    app = Flask(__name__)

    # Signs the cookie that carries the login state
    secret_key = os.environ.get(CONSTANTS._ENV_SECRET_KEY)
    if secret_key:
        app.config["SECRET_KEY"] = secret_key

    # Enforce a 256 KB payload limit
    app.config["MAX_CONTENT_LENGTH"] = CONSTANTS._MAX_CONTENT_LENGTH

    if config:
        app.config.update(config)

    # No default signing key
    if not app.config.get("SECRET_KEY"):
        raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "FLASK_SECRET_KEY must be set to sign the login cookie", CONSTANTS._ENV_SECRET_KEY)


    ################################################################################################
    # Initialize Handlers
    ################################################################################################

    app.audit_log = audit_log if audit_log is not None else AuditLog()

    app.database = database if database is not None else Database()

    app.error_handler = ErrorHandler(app.audit_log)

    argon2_manager = Argon2iManager()

    # Users table first: the conversation tables reference it
    authorization_handler = AuthorizationHandler(app.database, argon2_manager, app.audit_log)
    conversation_handler = ConversationHandler(app.database, app.audit_log)

    app.request_handler = RequestHandler(authorization_handler, conversation_handler)



    ################################################################################################
    # ROUTES
    ################################################################################################

    """
        Handle one request envelope: {"function": "<OPERATION> <TARGET>", "users": [...], ...}

        @require POST method and Content-Type application/json
        @return flask.Response: {"status": 1, ...} and 200, or an error packet and its HTTP code.
    """
    @app.post("/api/request")
    def handle_request():

        login_state = LoginState()

        try:
            content_type = request.headers.get("Content-Type", "").lower()
            if "application/json" not in content_type:
                raise ParleyError(ApplicationCodes.INVALID_CONTENT_TYPE, HTTPCodes.BAD_REQUEST, f"Invalid Content-Type header: {content_type}", "Content-Type")

            login_state = load_login_state()

            response_packet = app.request_handler.handle_raw(request.get_data(), login_state)

            store_login_state(login_state)

            return jsonify(response_packet), HTTPCodes.OK

        # Left to the 413 handler below
        except RequestEntityTooLarge:
            raise

        except Exception as e:
            clean_packet, status = app.error_handler.handle_server_error(e, email=login_state.email, context="handle_request")
            return jsonify(clean_packet), status



    ################################################################################################
    # GLOBAL ERROR HANDLERS
    ################################################################################################

    """
        413 Payload Too Large into a Parley error packet.
    """
    @app.errorhandler(413)
    def handle_payload_too_large(_e):

        e = ParleyError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.BAD_REQUEST, "Payload exceeds maximum size limit", "body")

        clean_packet, status = app.error_handler.handle_server_error(e, context="payload_too_large")

        return jsonify(clean_packet), status

    return app
