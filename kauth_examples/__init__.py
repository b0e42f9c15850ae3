"""K-Auth OAuth 2.0 + PKCE integration examples.

Two topologies against the same identity provider:

- ``b2b_server``: Flask app keeping the tokens in a server-side session
- ``spa``: client-resident flow keeping the tokens in session storage
"""
__version__ = "0.1.0"
