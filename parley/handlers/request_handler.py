#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
File name: request_handler.py
Author: Alex Biddle

Description:
    Routes a parsed CanonicalRequest to the operation handler registered for
    its (operation, target) pair. The routing table lists every pair of the
    two enums explicitly so a new operation or target cannot fall through
    silently; pairs without a handler fail with UNSUPPORTED_OPERATION.
"""



import typing
from parley.handlers.authorization_handler import AuthorizationHandler
from parley.handlers.conversation_handler import ConversationHandler
from parley.handlers.canonical_request import CanonicalRequest, Operation, Target
from parley.handlers.packet_handler import PacketHandler, Response
from parley.handlers.session_handler import LoginState
from parley.handlers.error_handler import ApplicationCodes, ParleyError, HTTPCodes


# Signature shared by every operation handler
OperationHandler = typing.Callable[[CanonicalRequest, LoginState], Response]



"""
    Entry point of the core: envelope in, Response packet out.
"""
class RequestHandler:
    """
        Initialize the RequestHandler with the operation handlers it routes to.

        @param: AuthorizationHandler - VERIFY USERS and CREATE USERS.
        @param: ConversationHandler - conversation, message, and conversation-user operations.
    """
    def __init__(self, authorization_handler: AuthorizationHandler, conversation_handler: ConversationHandler):

        if not isinstance(authorization_handler, AuthorizationHandler):
            raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "RequestHandler requires AuthorizationHandler instance", "authorization_handler")
        if not isinstance(conversation_handler, ConversationHandler):
            raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "RequestHandler requires ConversationHandler instance", "conversation_handler")

        self._authorization_handler: AuthorizationHandler = authorization_handler
        self._conversation_handler: ConversationHandler = conversation_handler
        self._packet_handler: PacketHandler = PacketHandler()

        self._routes: typing.Dict[typing.Tuple[Operation, Target], typing.Optional[OperationHandler]] = {
            (Operation.VERIFY, Target.USERS):           authorization_handler.verify_users,
            (Operation.VERIFY, Target.CONVERSATIONS):   None,
            (Operation.VERIFY, Target.MESSAGES):        None,
            (Operation.CREATE, Target.USERS):           authorization_handler.create_users,
            (Operation.CREATE, Target.CONVERSATIONS):   conversation_handler.create_conversations,
            (Operation.CREATE, Target.MESSAGES):        conversation_handler.create_messages,
            (Operation.READ, Target.USERS):             conversation_handler.read_users,
            (Operation.READ, Target.CONVERSATIONS):     conversation_handler.read_conversations,
            (Operation.READ, Target.MESSAGES):          conversation_handler.read_messages,
            (Operation.UPDATE, Target.USERS):           None,
            (Operation.UPDATE, Target.CONVERSATIONS):   None,
            (Operation.UPDATE, Target.MESSAGES):        None,
            (Operation.DELETE, Target.USERS):           None,
            (Operation.DELETE, Target.CONVERSATIONS):   None,
            (Operation.DELETE, Target.MESSAGES):        None,
        }

        # Every (operation, target) pair must be listed
        missing = {(o, t) for o in Operation for t in Target} - set(self._routes)
        if missing:
            raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, f"Routing table is missing {sorted((o.value, t.value) for o, t in missing)}", "routes")


    """
        Run the handler registered for request.operation / request.target.

        @param: CanonicalRequest - parsed request, consumed by this call.
        @param: LoginState - per-connection state, read and possibly authenticated by the handler.
        @returns: Response - the handler's outcome; errors propagate unchanged.
    """
    def handle(self, request: CanonicalRequest, login_state: LoginState) -> Response:

        handler = self._routes.get((request.operation, request.target))

        if handler is None:
            raise ParleyError(ApplicationCodes.UNSUPPORTED_OPERATION, HTTPCodes.BAD_REQUEST, f"Unsupported request: '{request.operation.value} {request.target.value}'", "function")

        return handler(request, login_state)


    """
        Parse a raw envelope, run it, and serialize the outcome.

        @param: dict | str | bytes - untyped request envelope.
        @param: LoginState - per-connection state.
        @returns: dict - outbound envelope {"status": 1, ...}.
    """
    def handle_raw(self, raw: typing.Any, login_state: LoginState) -> dict:

        request = CanonicalRequest.from_json(raw)

        response = self.handle(request, login_state)

        return self._packet_handler.create_response_packet(response)
