"""
Members authentication and authorization.

This package provides the member-facing half of a site's account system: a
cookie-backed authorization that tracks whether a browser agent is currently
associated with a verified member account, a one-time verification-code
protocol used to prove ownership of an e-mail address, and the registration
flow that folds third-party identity provider profile data into a locally
persisted account.

Quick start
-----------

.. code-block:: python

   from members.factory import create_web_app

   app = create_web_app()

Applications that only need the authorization cookie can install the
:class:`members.auth.Auth` extension on their own Flask app. The current
:class:`members.auth.session.MemberSession` is then available on
``flask.request.members`` and should be passed explicitly to anything that
needs it.
"""

from .domain import Account, AccountMeta, Authorization, \
    TransitionalRegistration, VerificationCode, VERIFICATION_KEY
