#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
	WSGI entry point for the Parley Flask application.
	The WSGI server imports this file and calls `application`,
	which must reference the Flask app returned by create_app().
"""

from parley.server import create_app

application = create_app()
