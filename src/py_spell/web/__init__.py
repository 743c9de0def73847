"""Browser-facing demo for py-spell.

This package provides a Flask application that runs command lines on
the server and returns what they printed.  It is an **optional** extra —
install with::

    pip install py-spell[web]

The ``create_app`` factory in ``app.py`` serves two endpoints:

- ``POST /api/cast`` — run one command line and return JSON.
- ``GET /api/log`` — the launch log, newest entries last.
"""
